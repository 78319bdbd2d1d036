"""
Rides domain package.

Public API:
- Domain models: Ride, Participant, RideStatus, ParticipantStatus, EventType
- Persistence contract: Datastore, InMemoryDatastore, PersistenceError
- Notifications: Notifier, LoggingNotifier, NotificationResult
- Lifecycle entry point: RideLifecycleManager
"""
from .lifecycle import RideCreation, RideLifecycleManager, RideUpdate
from .models import EventType, Participant, ParticipantStatus, Ride, RideStatus
from .notifier import LoggingNotifier, NotificationResult, Notifier
from .state_machines import ParticipantStateException, RideStateException
from .store import Datastore, InMemoryDatastore, PersistenceError

__all__ = [
    "Datastore",
    "EventType",
    "InMemoryDatastore",
    "LoggingNotifier",
    "NotificationResult",
    "Notifier",
    "Participant",
    "ParticipantStateException",
    "ParticipantStatus",
    "PersistenceError",
    "Ride",
    "RideCreation",
    "RideLifecycleManager",
    "RideStateException",
    "RideStatus",
    "RideUpdate",
]
