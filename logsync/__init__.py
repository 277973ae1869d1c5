from logsync.log_helper import LogHelper
from logsync.sync_helper import LogSyncHelper, default_key
from logsync.models.data_models import LogRecord, SyncCheckpoint, SyncResult

__all__ = ["LogHelper", "LogSyncHelper", "LogRecord", "SyncCheckpoint", "SyncResult", "default_key"]
