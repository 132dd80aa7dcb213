"""
Shared in-memory state of the alert engine.

AlertStore is the single owned container for the alert set, the cooldown
mapping, the per-aircraft history and the airborne-traffic samples. It is
created once by the service and passed to the AlertManager and the
AlertStorage; nothing else holds these collections.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from airwatch.detection.history import DEFAULT_HISTORY_SIZE, HistoryStore
from airwatch.models.alerts import Alert, AlertType

GLOBAL_KEY = "global"

CooldownKey = Tuple[AlertType, str]


def build_cooldown_key(
    alert_type: AlertType, aircraft_id: Optional[str] = None
) -> CooldownKey:
    """Cooldown key for a type, scoped to an aircraft or to ``global``."""
    return (alert_type, aircraft_id or GLOBAL_KEY)


@dataclass
class AlertStore:
    """
    Owned mutable state of the alert engine.

    Attributes:
        alerts: In-memory alerts in creation order.
        cooldowns: Last firing time (epoch ms) per cooldown key.
        history: Rolling per-aircraft snapshot history.
        traffic_samples: ``(timestamp, airborne_count)`` per analysis pass.
    """

    history: HistoryStore = field(default_factory=lambda: HistoryStore(DEFAULT_HISTORY_SIZE))
    alerts: List[Alert] = field(default_factory=list)
    cooldowns: Dict[CooldownKey, int] = field(default_factory=dict)
    traffic_samples: Deque[Tuple[int, int]] = field(default_factory=deque)

    @classmethod
    def create(cls, history_size: int = DEFAULT_HISTORY_SIZE) -> "AlertStore":
        return cls(history=HistoryStore(history_size))

    def replace_alerts(self, alerts: List[Alert]) -> None:
        """Swap the alert set in place so holders of the store see the change."""
        self.alerts[:] = alerts

    def reset(self) -> None:
        """Forget alerts and cooldowns; history is kept."""
        self.alerts.clear()
        self.cooldowns.clear()
