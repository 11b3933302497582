from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine

__all__ = ["Connectivity", "SyncEngine"]
