import math

from rides.notifier import NotificationResult, Notifier

KM_PER_DEGREE_LAT = 111.195


def offset(point, north_km=0.0, east_km=0.0):
    """Shift a (lat, lon) point by a number of kilometres."""
    lat, lon = point
    d_lat = north_km / KM_PER_DEGREE_LAT
    d_lon = east_km / (KM_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return (lat + d_lat, lon + d_lon)


class RecordingNotifier(Notifier):
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    def notify(self, ride_id, event_type, reason=None):
        self.events.append((ride_id, event_type, reason))
        if self.fail:
            raise ConnectionError("notification service unreachable")
        return NotificationResult(sent=1)
