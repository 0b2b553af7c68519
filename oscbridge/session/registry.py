"""
Session Registry

In-memory table of connected clients. Owns every ClientSession and the
per-client position aggregate used by blended routing.

Everything here runs on the event loop thread and never awaits, so a
caller's read-modify-write sequence cannot interleave with another
connection's. Listing methods return copies so callers may remove
sessions while iterating.

Zones:
The unit square is split into ``zone_count`` equal cells laid out as a
``side x side`` grid (``side = sqrt(zone_count)``), numbered row by row
from 1 in the top-left corner.
"""

import logging
import math

from oscbridge.session.session import ClientSession, DEFAULT_POSITION

logger = logging.getLogger(__name__)


def is_perfect_square(value: int) -> bool:
    """True for 1, 4, 9, 16, ..."""
    if value < 1:
        return False
    root = math.isqrt(value)
    return root * root == value


def _clamp_unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class SessionRegistry:
    """
    Authoritative store of connected client sessions.

    Ids are allocated from a monotonically increasing counter and are
    never reused, even after the session that held one disconnects.
    """

    def __init__(self, zone_count: int = 4):
        """
        Initialize the registry.

        Args:
            zone_count: Number of grid cells for zone routing (perfect square)

        Raises:
            ValueError: If zone_count is not a positive perfect square
        """
        if not is_perfect_square(zone_count):
            raise ValueError(f"zone_count must be a perfect square, got {zone_count}")

        self._zone_count = zone_count
        self._grid_side = math.isqrt(zone_count)

        # Primary index: user_id -> ClientSession (insertion order == id order)
        self._sessions: dict[int, ClientSession] = {}

        self._last_id = 0

    @property
    def zone_count(self) -> int:
        return self._zone_count

    @property
    def grid_side(self) -> int:
        return self._grid_side

    # === Membership ===

    def add(self) -> ClientSession:
        """Create a session with the next sequential id."""
        self._last_id += 1
        session = ClientSession(user_id=self._last_id, last_position=DEFAULT_POSITION)
        self._sessions[session.user_id] = session
        logger.debug(f"Session added: {session.user_id} (total: {self.count})")
        return session

    def remove(self, user_id: int) -> ClientSession | None:
        """
        Remove a session.

        Its position drops out of the aggregate in the same step.

        Returns:
            The removed session, or None if it was not registered
        """
        session = self._sessions.pop(user_id, None)
        if session:
            logger.debug(f"Session removed: {user_id} (total: {self.count})")
        return session

    def get(self, user_id: int) -> ClientSession | None:
        return self._sessions.get(user_id)

    def all(self) -> list[ClientSession]:
        """All sessions in ascending id order (a copy)."""
        return sorted(self._sessions.values(), key=lambda s: s.user_id)

    def ids(self) -> list[int]:
        return sorted(self._sessions)

    def lowest_id(self) -> int | None:
        return min(self._sessions) if self._sessions else None

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def count(self) -> int:
        """Number of connected sessions."""
        return len(self._sessions)

    # === Zones ===

    def classify_zone(self, x: float, y: float) -> int:
        """
        Map a position to the zone containing it.

        Coordinates outside [0, 1] are clamped first; the right and bottom
        edges belong to the last column and row.
        """
        side = self._grid_side
        col = min(math.floor(_clamp_unit(x) * side), side - 1)
        row = min(math.floor(_clamp_unit(y) * side), side - 1)
        return row * side + col + 1

    def _pick_zone(self, user_id: int, held: set[int]) -> int:
        for zone in range(1, self._zone_count + 1):
            if zone not in held:
                return zone
        return ((user_id - 1) % self._zone_count) + 1

    def assign_zone(self, user_id: int) -> int | None:
        """
        Give one session the first zone no other session holds.

        Once every zone is taken, zones are shared by id modulo the
        zone count.
        """
        session = self._sessions.get(user_id)
        if session is None:
            return None
        held = {
            s.zone for s in self._sessions.values()
            if s.zone is not None and s.user_id != user_id
        }
        session.zone = self._pick_zone(user_id, held)
        logger.debug(f"Session {user_id} assigned zone {session.zone}")
        return session.zone

    def reassign_zones(self) -> dict[int, int]:
        """
        Recompute zones for every session from scratch, in id order.

        The result depends only on the set of connected ids.

        Returns:
            Mapping of user_id -> zone
        """
        held: set[int] = set()
        assignments: dict[int, int] = {}
        for session in self.all():
            session.zone = self._pick_zone(session.user_id, held)
            held.add(session.zone)
            assignments[session.user_id] = session.zone

        logger.info(f"Zones reassigned for {len(assignments)} session(s): {assignments}")
        return assignments

    # === Position aggregate ===

    def update_position(
        self,
        user_id: int,
        x: float | None = None,
        y: float | None = None
    ) -> tuple[float, float] | None:
        """
        Record a position sample for a session.

        A missing axis keeps its previous value (0.5 for a new session).

        Returns:
            The session's new position, or None if the session is gone
        """
        session = self._sessions.get(user_id)
        if session is None:
            return None
        return session.move_to(x, y)

    def positions(self) -> dict[int, tuple[float, float]]:
        """Current aggregate: user_id -> last known (x, y)."""
        return {uid: s.last_position for uid, s in self._sessions.items()}

    def mean_position(self) -> tuple[float, float] | None:
        """
        Arithmetic mean of every connected session's position.

        Returns:
            (mean_x, mean_y), or None when nobody is connected
        """
        if not self._sessions:
            return None
        count = len(self._sessions)
        sum_x = math.fsum(s.last_position[0] for s in self._sessions.values())
        sum_y = math.fsum(s.last_position[1] for s in self._sessions.values())
        return sum_x / count, sum_y / count
