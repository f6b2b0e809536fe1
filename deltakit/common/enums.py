from enum import Enum


class SnapshotSource(str, Enum):
    sdk = "sdk"
    webhook = "webhook"
    polling = "polling"


class Tier(str, Enum):
    free = "free"
    pro = "pro"
    enterprise = "enterprise"


class OperationType(str, Enum):
    add = "add"
    remove = "remove"
    replace = "replace"
