from enum import Enum


class CartUpdateState(str, Enum):
    SNAPSHOTTING = "SNAPSHOTTING"
    MUTATING = "MUTATING"
    RETRYING = "RETRYING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"                 # Terminal: error propagated to transport layer
    RECONCILING = "RECONCILING"
    RESPONDING = "RESPONDING"         # Terminal: canonical cart returned
