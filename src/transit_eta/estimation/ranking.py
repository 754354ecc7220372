from transit_eta.models.responses import Arrival


def deduplicate_arrivals(arrivals: list[Arrival]) -> list[Arrival]:
    """Collapse arrivals sharing (vehicle_id, line_name), keeping the earliest."""
    seen: dict[tuple[str, str], Arrival] = {}

    for arrival in arrivals:
        key = (arrival.vehicle_id, arrival.line_name)
        current = seen.get(key)
        if current is None or arrival.time_to_station < current.time_to_station:
            seen[key] = arrival

    return list(seen.values())


def rank_arrivals(arrivals: list[Arrival], limit: int) -> list[Arrival]:
    """Dedupe, sort ascending by time_to_station and cap at ``limit``."""
    unique = deduplicate_arrivals(arrivals)
    unique.sort(key=lambda a: a.time_to_station)
    return unique[:limit]


def format_time_to_station(seconds: int) -> str:
    """Format seconds-to-station for display.

    Examples:
        25 -> "Due"
        75 -> "1 min"
        600 -> "10 mins"
        3900 -> "1 hr 5 min"
    """
    minutes = seconds // 60
    if minutes < 1:
        return "Due"
    if minutes == 1:
        return "1 min"
    if minutes >= 60:
        hours, remaining = divmod(minutes, 60)
        if remaining == 0:
            return f"{hours} hr"
        return f"{hours} hr {remaining} min"
    return f"{minutes} mins"
