"""持久化模块

提供布局快照的持久化功能：
- KeyValueStore: 按 key 存储文本（每个 key 一个文件）
- 原子写入（temp + rename）
- save_state / load_state: 失败降级为"无持久化状态"
- migrate_from_legacy: 清理旧格式数据
"""

import json
import os
import re
import tempfile
from pathlib import Path

from ..config import LEGACY_ACTIVE_SESSIONS_KEY, METRICS_ENABLED, STATE_DIR, STORAGE_KEY
from ..telemetry import get_logger, metrics
from .snapshot import decode, encode
from .types import LayoutState

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueStore:
    """基于目录的键值存储

    每个 key 对应 `<root>/<key>.json`，写入使用 temp + rename 保证原子性。
    读写异常直接抛出，由调用方决定如何降级。
    """

    def __init__(self, root: Path | None = None):
        self.root = Path(root) if root is not None else STATE_DIR

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    def get(self, key: str) -> str | None:
        """读取 key，不存在返回 None

        Raises:
            UnicodeDecodeError: 文件内容不是合法 UTF-8
        """
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        """原子写入 key"""
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix=f"{key}_", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(temp_path, path)
        except Exception:
            # 清理临时文件
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def delete(self, key: str) -> bool:
        """删除 key

        Returns:
            key 原本是否存在
        """
        path = self._path(key)
        if not path.exists():
            return False
        os.unlink(path)
        return True

    def keys(self) -> list[str]:
        """列出所有 key"""
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))


def save_state(state: LayoutState, store: KeyValueStore) -> bool:
    """保存布局快照

    写入失败只记录警告，状态继续保留在内存中。

    Returns:
        是否成功
    """
    try:
        store.set(STORAGE_KEY, encode(state))
        logger.debug(f"[Persist] Saved layout with {len(state.panes)} panes")
        return True
    except Exception as e:
        logger.warning(f"[Persist] Save failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "save"})
        return False


def load_state(store: KeyValueStore) -> LayoutState | None:
    """加载布局快照

    读取失败与"没有快照"同样处理。

    Returns:
        LayoutState，不存在或不可用时返回 None
    """
    try:
        raw = store.get(STORAGE_KEY)
    except UnicodeDecodeError as e:
        logger.warning(f"[Persist] Saved layout is not valid UTF-8, using default layout: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "load", "reason": "encoding"})
        return None
    except Exception as e:
        logger.warning(f"[Persist] Load failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "load", "reason": "io"})
        return None

    if raw is None:
        logger.debug("[Persist] No saved layout")
        return None

    state = decode(raw)
    if state is None:
        logger.warning("[Persist] Saved layout is unreadable, using default layout")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "load", "reason": "decode"})
        return None

    logger.info(f"[Persist] Loaded layout with {len(state.panes)} panes")
    return state


def _is_legacy_layout(raw: str) -> bool:
    """无 version 字段或无法解析的布局数据视为旧格式"""
    try:
        parsed = json.loads(raw)
    except ValueError:
        return True
    return not isinstance(parsed, dict) or "version" not in parsed


def migrate_from_legacy(store: KeyValueStore) -> bool:
    """清理旧格式数据

    - 旧版 active-sessions 记录：直接删除
    - 布局 slot 中无版本的数据：直接删除（布局位置不值得迁移）
    - 其他 key（连接配置等）不做任何改动

    有删除时记录一次日志，否则静默。

    Returns:
        是否删除了任何数据
    """
    removed: list[str] = []

    try:
        if store.get(LEGACY_ACTIVE_SESSIONS_KEY) is not None:
            store.delete(LEGACY_ACTIVE_SESSIONS_KEY)
            removed.append(LEGACY_ACTIVE_SESSIONS_KEY)

        try:
            raw = store.get(STORAGE_KEY)
            legacy = raw is not None and _is_legacy_layout(raw)
        except UnicodeDecodeError:
            # 非 UTF-8 数据同样视为无法解析
            legacy = True
        if legacy:
            store.delete(STORAGE_KEY)
            removed.append(STORAGE_KEY)
    except Exception as e:
        logger.warning(f"[Persist] Legacy migration failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "migrate"})

    if removed:
        logger.info(
            "[Persist] Migrated from legacy state: old layout and active session data cleared"
        )
        if METRICS_ENABLED:
            for key in removed:
                metrics.inc("migration.removed", {"key": key})
    return bool(removed)
