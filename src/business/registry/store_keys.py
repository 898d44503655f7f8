"""Store key layout shared by every registry."""

CHANNEL_PREFIX = "ch:"
CHANNEL_LIST = "ch_list"

TARGET_PREFIX = "app:"
TARGET_INDEX_PREFIX = "app_idx:"
TARGET_LIST = "app_list"

RECIPIENT_PREFIX = "oid:"
RECIPIENTS_BY_TARGET_PREFIX = "oid_app:"
RECIPIENT_INDEX_PREFIX = "oid_idx:"

MESSAGE_PREFIX = "msg:"
MESSAGE_LIST = "msg_list"
MESSAGES_BY_TARGET_PREFIX = "msg_app:"

OAUTH_STATE_PREFIX = "oauth_state:"


def channel(channel_id: str) -> str:
    return f"{CHANNEL_PREFIX}{channel_id}"


def target(target_id: str) -> str:
    return f"{TARGET_PREFIX}{target_id}"


def target_index(push_key: str) -> str:
    return f"{TARGET_INDEX_PREFIX}{push_key}"


def recipient(recipient_id: str) -> str:
    return f"{RECIPIENT_PREFIX}{recipient_id}"


def recipients_by_target(target_id: str) -> str:
    return f"{RECIPIENTS_BY_TARGET_PREFIX}{target_id}"


def recipient_index(target_id: str, platform_user_id: str) -> str:
    return f"{RECIPIENT_INDEX_PREFIX}{target_id}:{platform_user_id}"


def message(message_id: str) -> str:
    return f"{MESSAGE_PREFIX}{message_id}"


def messages_by_target(target_id: str) -> str:
    return f"{MESSAGES_BY_TARGET_PREFIX}{target_id}"


def oauth_state(token: str) -> str:
    return f"{OAUTH_STATE_PREFIX}{token}"
