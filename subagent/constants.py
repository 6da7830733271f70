"""Constants used across subagent.

This module defines shared constants to ensure consistency.
"""

# Slot layout
SLOT_PREFIX = "subagent-"
WORKSPACE_EXTENSION = ".code-workspace"
MESSAGES_DIRNAME = "messages"
CHATMODE_SUFFIX = ".chatmode.md"

DEFAULT_LOCK_NAME = "subagent.lock"
DEFAULT_WORKSPACE_FILENAME = "subagent.code-workspace"
DEFAULT_WAKEUP_FILENAME = "wakeup.chatmode.md"
DEFAULT_ALIVE_FILENAME = ".alive"

# Host variants and their default pool folders under ~/.subagent
HOST_VARIANTS: dict[str, str] = {
    "code": "vscode-agents",
    "code-insiders": "vscode-insiders-agents",
}
DEFAULT_HOST_COMMAND = "code"

# Chat modes used when talking to the host
WAKEUP_CHAT_MODE = "wakeup"
WAKEUP_MESSAGE = "create a file named .alive"
DEFAULT_CHAT_MODE = "agent"

# Polling defaults (seconds)
READY_TIMEOUT_S = 60.0
READY_POLL_INTERVAL_S = 1.0
RESPONSE_POLL_INTERVAL_S = 1.0
READ_ATTEMPTS = 10
READ_RETRY_DELAY_S = 0.25
CHAT_LAUNCH_DELAY_S = 0.5
STATUS_PROBE_TIMEOUT_S = 10.0

# Workspace settings whose keys are paths or glob patterns
CHAT_LOCATION_SETTINGS = (
    "chat.promptFilesLocations",
    "chat.instructionsFilesLocations",
    "chat.modeFilesLocations",
)

# Log file rotation
LOG_MAX_BYTES = 50 * 1024 * 1024
LOG_BACKUP_COUNT = 10
