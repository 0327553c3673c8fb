"""Load status state machine.

posted → assigned → accepted → en_route_pickup → at_pickup → picked_up
       → en_route_delivery → at_delivery → delivered → completed
Cancellation is possible until the cargo is picked up. completed and
cancelled are terminal.
"""

from src.fm_common.enums import LoadStatus

LOAD_TRANSITIONS: dict[LoadStatus, frozenset[LoadStatus]] = {
    LoadStatus.POSTED: frozenset({LoadStatus.ASSIGNED, LoadStatus.CANCELLED}),
    LoadStatus.ASSIGNED: frozenset(
        {LoadStatus.ACCEPTED, LoadStatus.EN_ROUTE_PICKUP, LoadStatus.CANCELLED}
    ),
    LoadStatus.ACCEPTED: frozenset({LoadStatus.EN_ROUTE_PICKUP, LoadStatus.CANCELLED}),
    LoadStatus.EN_ROUTE_PICKUP: frozenset(
        {LoadStatus.AT_PICKUP, LoadStatus.PICKED_UP, LoadStatus.CANCELLED}
    ),
    LoadStatus.AT_PICKUP: frozenset({LoadStatus.PICKED_UP}),
    LoadStatus.PICKED_UP: frozenset({LoadStatus.EN_ROUTE_DELIVERY}),
    LoadStatus.EN_ROUTE_DELIVERY: frozenset({LoadStatus.AT_DELIVERY, LoadStatus.DELIVERED}),
    LoadStatus.AT_DELIVERY: frozenset({LoadStatus.DELIVERED}),
    LoadStatus.DELIVERED: frozenset({LoadStatus.COMPLETED}),
    LoadStatus.COMPLETED: frozenset(),
    LoadStatus.CANCELLED: frozenset(),
}

CANCELLABLE_STATUSES: frozenset[LoadStatus] = frozenset(
    {
        LoadStatus.POSTED,
        LoadStatus.ASSIGNED,
        LoadStatus.ACCEPTED,
        LoadStatus.EN_ROUTE_PICKUP,
    }
)

# Only reachable through offer acceptance or book-now
SYSTEM_ONLY_TARGETS: frozenset[LoadStatus] = frozenset({LoadStatus.ASSIGNED})

# Column stamped with NOW() when the load enters the status
TIMESTAMP_COLUMNS: dict[LoadStatus, str] = {
    LoadStatus.ASSIGNED: "assigned_at",
    LoadStatus.PICKED_UP: "picked_up_at",
    LoadStatus.DELIVERED: "delivered_at",
    LoadStatus.COMPLETED: "completed_at",
    LoadStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: LoadStatus, target: LoadStatus) -> bool:
    return target in LOAD_TRANSITIONS.get(current, frozenset())


def is_terminal(status: LoadStatus) -> bool:
    return not LOAD_TRANSITIONS.get(status)
