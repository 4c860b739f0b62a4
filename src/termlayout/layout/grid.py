"""网格树操作

纯函数，不修改输入，不了解 tab / session：
- find_leaf_path: 查找叶子路径
- insert_split: 叶子替换为二分 branch
- remove_leaf: 删除叶子，空 branch 折叠
- simplify_tree: 单子节点 branch 替换为子节点
- update_sizes: 按路径更新 branch 尺寸
- normalize_sizes: 尺寸按比例归一到 100

未变化的子树按引用返回，便于上层做 identity 比较。
"""

from collections.abc import Iterator, Sequence

from ..config import SPLIT_SIZES
from .types import Branch, GridNode, Leaf, SplitDirection


def find_leaf_path(node: GridNode, group_id: str) -> list[int] | None:
    """深度优先查找叶子

    Returns:
        从根到叶子的子节点下标序列；未找到返回 None
    """
    if isinstance(node, Leaf):
        return [] if node.group_id == group_id else None
    for i, child in enumerate(node.children):
        sub = find_leaf_path(child, group_id)
        if sub is not None:
            return [i, *sub]
    return None


def insert_split(
    node: GridNode,
    group_id: str,
    new_group_id: str,
    direction: SplitDirection,
) -> GridNode:
    """将 group_id 对应的叶子替换为包含新旧叶子的 branch

    left/up 时新 pane 在前，right/down 时新 pane 在后，初始尺寸平分。
    """
    if isinstance(node, Leaf):
        if node.group_id != group_id:
            return node
        old_leaf = Leaf(group_id)
        new_leaf = Leaf(new_group_id)
        children = (new_leaf, old_leaf) if direction.new_first else (old_leaf, new_leaf)
        return Branch(orientation=direction.orientation, children=children, sizes=SPLIT_SIZES)

    children = tuple(insert_split(c, group_id, new_group_id, direction) for c in node.children)
    if all(new is old for new, old in zip(children, node.children)):
        return node
    return Branch(orientation=node.orientation, children=children, sizes=node.sizes)


def remove_leaf(node: GridNode, group_id: str) -> GridNode | None:
    """删除叶子

    子节点全部删除的 branch 一并折叠。

    Returns:
        新树；整棵树被删除时返回 None
    """
    if isinstance(node, Leaf):
        return None if node.group_id == group_id else node

    children: list[GridNode] = []
    sizes: list[float] = []
    for child, size in zip(node.children, node.sizes):
        result = remove_leaf(child, group_id)
        if result is not None:
            children.append(result)
            sizes.append(size)

    if not children:
        return None
    if len(children) == len(node.children):
        # 本层没有删除，子树也可能未变化
        if all(new is old for new, old in zip(children, node.children)):
            return node
        return Branch(orientation=node.orientation, children=tuple(children), sizes=node.sizes)
    return Branch(
        orientation=node.orientation,
        children=tuple(children),
        sizes=normalize_sizes(sizes),
    )


def simplify_tree(node: GridNode) -> GridNode:
    """递归折叠只剩一个子节点的 branch"""
    if isinstance(node, Leaf):
        return node
    children = tuple(simplify_tree(child) for child in node.children)
    if len(children) == 1:
        return children[0]
    if all(new is old for new, old in zip(children, node.children)):
        return node
    return Branch(orientation=node.orientation, children=children, sizes=node.sizes)


def update_sizes(node: GridNode, path: Sequence[int], sizes: Sequence[float]) -> GridNode:
    """替换 path 所指 branch 的 sizes

    path 无法解析到 branch，或 sizes 与子节点数量不一致时原样返回。
    """
    if not path:
        if isinstance(node, Branch) and len(sizes) == len(node.children):
            return Branch(
                orientation=node.orientation,
                children=node.children,
                sizes=tuple(float(size) for size in sizes),
            )
        return node
    if isinstance(node, Leaf):
        return node

    index, rest = path[0], path[1:]
    if index < 0 or index >= len(node.children):
        return node
    child = update_sizes(node.children[index], rest, sizes)
    if child is node.children[index]:
        return node
    children = node.children[:index] + (child,) + node.children[index + 1:]
    return Branch(orientation=node.orientation, children=children, sizes=node.sizes)


def normalize_sizes(sizes: Sequence[float]) -> tuple[float, ...]:
    """按比例缩放使总和为 100

    原总和为 0 时平分。
    """
    total = sum(sizes)
    if total == 0:
        return tuple(100 / len(sizes) for _ in sizes)
    return tuple(size / total * 100 for size in sizes)


def collect_leaf_ids(node: GridNode) -> list[str]:
    """深度优先收集所有叶子 id"""
    if isinstance(node, Leaf):
        return [node.group_id]
    return [leaf_id for child in node.children for leaf_id in collect_leaf_ids(child)]


def iter_branches(node: GridNode) -> Iterator[Branch]:
    """遍历所有 branch 节点"""
    if isinstance(node, Branch):
        yield node
        for child in node.children:
            yield from iter_branches(child)
