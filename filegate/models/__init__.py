"""
FileGate record types
"""
from filegate.models.configuration import (BACKUP_DIR_NAME,  # noqa: F401
                                           FolderEntry, GateConfiguration,
                                           is_folder_token)
from filegate.models.write import (Identity, RequestOrigin,  # noqa: F401
                                   WriteOutcome, WriteRequest)
