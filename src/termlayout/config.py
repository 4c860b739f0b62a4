"""termlayout 配置

配置分为以下几类：
- 存储配置：状态目录、存储 key、快照版本
- 布局配置：默认分屏比例
- 恢复配置：RestorationBarrier 超时
- 日志/指标配置
- Web 配置
"""

import os
from pathlib import Path

# === 存储配置 ===
STATE_DIR = Path(os.environ.get("TERMLAYOUT_STATE_DIR", Path.home() / ".termlayout"))
STORAGE_KEY = "terminal-groups"  # 布局快照 slot
STATE_VERSION = 1  # 当前快照版本，其他版本一律拒绝

# 旧版 key（仅用于迁移删除，不再写入）
LEGACY_ACTIVE_SESSIONS_KEY = "active-sessions"

# 活动 session 排序记录（供启动时按顺序重连）
ACTIVE_CONNECTIONS_KEY = "active-connections"

# === 布局配置 ===
DEFAULT_PANE_ID = "1"  # 初始 pane id
SPLIT_SIZES = (50.0, 50.0)  # 新分屏的初始比例

# === 恢复配置 ===
RESTORATION_TIMEOUT_SECONDS = 5.0  # 等待 session ready 的最长时间（超时放行）

# === 日志配置 ===
LOG_LEVEL = os.environ.get("TERMLAYOUT_LOG_LEVEL", "INFO")

# === 指标配置 ===
METRICS_ENABLED = True

# === Web 配置 ===
WEB_HOST = os.environ.get("TERMLAYOUT_HOST", "127.0.0.1")
WEB_PORT = int(os.environ.get("TERMLAYOUT_PORT", "8766"))
