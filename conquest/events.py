"""
Random Events - Timed world events that modify growth and defense.

The first event fires on day 5; each following event is scheduled 3-7 days
after the previous one. Only one event is active at a time.

- Resource Boom: troop growth doubled for 3 days
- Supply Shortage: AI players' troop growth halved for 2 days
- Military Parade: human players' forts 50% more effective for 2 days
"""

import random
from enum import Enum
from dataclasses import dataclass
from typing import Optional


class EventKind(Enum):
    RESOURCE_BOOM = "Resource Boom"
    SUPPLY_SHORTAGE = "Supply Shortage"
    MILITARY_PARADE = "Military Parade"


@dataclass(frozen=True)
class EventSpec:
    kind: EventKind
    duration_days: int
    effect: str


EVENT_SPECS = {
    EventKind.RESOURCE_BOOM: EventSpec(
        EventKind.RESOURCE_BOOM, 3,
        "All farms produce double troops for the next 3 days!",
    ),
    EventKind.SUPPLY_SHORTAGE: EventSpec(
        EventKind.SUPPLY_SHORTAGE, 2,
        "AI players have reduced troop production for 2 days.",
    ),
    EventKind.MILITARY_PARADE: EventSpec(
        EventKind.MILITARY_PARADE, 2,
        "Your defensive buildings are 50% more effective for 2 days!",
    ),
}


class EventSchedule:
    """Tracks the active event and when the next one fires."""

    def __init__(self, first_event_day: int = 5,
                 rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.next_event_day = first_event_day
        self.active: Optional[EventKind] = None
        self.active_until = 0  # Exclusive day bound

    def on_new_day(self, day: int) -> Optional[str]:
        """
        Advance to a new game day. Expires the active event when its time is
        up and fires a new one when scheduled. Returns a status message for
        a newly fired event, else None.
        """
        if self.active is not None and day >= self.active_until:
            self.active = None

        if day < self.next_event_day:
            return None

        spec = EVENT_SPECS[self.rng.choice(list(EventKind))]
        self.active = spec.kind
        self.active_until = day + spec.duration_days
        self.next_event_day = day + self.rng.randint(3, 7)
        return f"Day {day}: {spec.kind.value} - {spec.effect}"

    def is_active(self, kind: EventKind) -> bool:
        return self.active == kind

    def clear(self):
        self.active = None
