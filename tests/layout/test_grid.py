"""网格树操作测试"""

import pytest

from termlayout.layout import (
    Branch,
    Leaf,
    Orientation,
    SplitDirection,
    collect_leaf_ids,
    find_leaf_path,
    insert_split,
    normalize_sizes,
    remove_leaf,
    simplify_tree,
    update_sizes,
)
from termlayout.layout.grid import iter_branches


def hbranch(*children, sizes=None):
    sizes = sizes or tuple(100 / len(children) for _ in children)
    return Branch(Orientation.HORIZONTAL, tuple(children), tuple(sizes))


def vbranch(*children, sizes=None):
    sizes = sizes or tuple(100 / len(children) for _ in children)
    return Branch(Orientation.VERTICAL, tuple(children), tuple(sizes))


class TestFindLeafPath:
    """查找叶子路径"""

    def test_root_leaf(self):
        assert find_leaf_path(Leaf("1"), "1") == []

    def test_missing(self):
        assert find_leaf_path(Leaf("1"), "2") is None

    def test_nested(self):
        tree = hbranch(Leaf("1"), vbranch(Leaf("2"), Leaf("3")))
        assert find_leaf_path(tree, "1") == [0]
        assert find_leaf_path(tree, "3") == [1, 1]
        assert find_leaf_path(tree, "9") is None


class TestInsertSplit:
    """分屏插入"""

    @pytest.mark.parametrize(
        "direction,orientation,order",
        [
            (SplitDirection.RIGHT, Orientation.HORIZONTAL, ["1", "2"]),
            (SplitDirection.LEFT, Orientation.HORIZONTAL, ["2", "1"]),
            (SplitDirection.DOWN, Orientation.VERTICAL, ["1", "2"]),
            (SplitDirection.UP, Orientation.VERTICAL, ["2", "1"]),
        ],
    )
    def test_direction(self, direction, orientation, order):
        tree = insert_split(Leaf("1"), "1", "2", direction)

        assert isinstance(tree, Branch)
        assert tree.orientation == orientation
        assert collect_leaf_ids(tree) == order
        assert tree.sizes == (50.0, 50.0)

    def test_nested_target(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        result = insert_split(tree, "2", "3", SplitDirection.DOWN)

        assert collect_leaf_ids(result) == ["1", "2", "3"]
        assert result.children[0] is tree.children[0]
        assert result.children[1].orientation == Orientation.VERTICAL
        assert result.sizes == tree.sizes

    def test_missing_target_returns_same_tree(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        assert insert_split(tree, "9", "3", SplitDirection.RIGHT) is tree


class TestRemoveLeaf:
    """删除叶子"""

    def test_remove_root(self):
        assert remove_leaf(Leaf("1"), "1") is None

    def test_remove_missing_returns_same_tree(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        assert remove_leaf(tree, "9") is tree

    def test_renormalizes_sizes(self):
        tree = hbranch(Leaf("1"), Leaf("2"), Leaf("3"), sizes=(20, 30, 50))
        result = remove_leaf(tree, "3")

        assert collect_leaf_ids(result) == ["1", "2"]
        assert result.sizes == pytest.approx((40.0, 60.0))

    def test_leaves_single_child_branch_for_simplify(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        result = remove_leaf(tree, "2")

        assert isinstance(result, Branch)
        assert result.children == (Leaf("1"),)
        assert result.sizes == pytest.approx((100.0,))
        assert simplify_tree(result) == Leaf("1")

    def test_deep_remove_keeps_sibling_identity(self):
        left = vbranch(Leaf("1"), Leaf("2"))
        right = vbranch(Leaf("3"), Leaf("4"))
        tree = hbranch(left, right)

        result = remove_leaf(tree, "4")
        assert result.children[0] is left
        assert collect_leaf_ids(result) == ["1", "2", "3"]


class TestSimplifyTree:
    """折叠单子节点 branch"""

    def test_nested_single_child(self):
        tree = Branch(
            Orientation.HORIZONTAL,
            (Branch(Orientation.VERTICAL, (Leaf("1"),), (100.0,)),),
            (100.0,),
        )
        assert simplify_tree(tree) == Leaf("1")

    def test_minimal_tree_unchanged(self):
        tree = hbranch(Leaf("1"), vbranch(Leaf("2"), Leaf("3")))
        assert simplify_tree(tree) is tree


class TestUpdateSizes:
    """更新尺寸"""

    def test_root(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        result = update_sizes(tree, [], [30, 70])
        assert result.sizes == (30.0, 70.0)

    def test_nested(self):
        tree = hbranch(Leaf("1"), vbranch(Leaf("2"), Leaf("3")))
        result = update_sizes(tree, [1], [25, 75])

        assert result.children[1].sizes == (25.0, 75.0)
        assert result.sizes == tree.sizes
        assert result.children[0] is tree.children[0]

    @pytest.mark.parametrize("path", [[0], [5], [-1], [1, 0, 0]])
    def test_unresolved_path_is_noop(self, path):
        tree = hbranch(Leaf("1"), vbranch(Leaf("2"), Leaf("3")))
        assert update_sizes(tree, path, [50, 50]) is tree

    def test_length_mismatch_is_noop(self):
        tree = hbranch(Leaf("1"), Leaf("2"))
        assert update_sizes(tree, [], [100]) is tree


class TestNormalizeSizes:
    """尺寸归一"""

    def test_proportional(self):
        assert normalize_sizes([1, 3]) == pytest.approx((25.0, 75.0))

    def test_zero_sum_even_split(self):
        assert normalize_sizes([0, 0, 0]) == pytest.approx((100 / 3,) * 3)


def test_iter_branches():
    tree = hbranch(Leaf("1"), vbranch(Leaf("2"), Leaf("3")))
    assert len(list(iter_branches(tree))) == 2
    assert list(iter_branches(Leaf("1"))) == []
