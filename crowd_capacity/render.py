from __future__ import annotations

from backend.app.monitor import LEVEL_LABELS

BAR_CHAR = "#"


def _bar(value: int, top: int, width: int) -> str:
    if top <= 0:
        return ""
    n = round(width * min(value, top) / top)
    return BAR_CHAR * n


def render_result(result: dict, *, bar_width: int = 30) -> str:
    bar_width = max(5, int(bar_width))
    inp = result["input"]
    calc = result["calculation"]
    caps = result["capacities"]
    res = result["result"]

    lines = [
        f"Venue: {inp['venueType']}  area={inp['totalArea']} m2  "
        f"entrances={inp['entranceCount']}  aisle={inp['aisleWidth']} m",
        f"Theoretical max: {calc['theoreticalMax']:,}  exit capacity: {calc['exitCapacity']:,}  "
        f"bottleneck risk: {'yes' if calc['bottleneckRisk'] else 'no'}",
        "",
    ]
    top = max(int(caps["level5"]), 1)
    for n in range(1, 6):
        value = int(caps[f"level{n}"])
        label = f"L{n} {LEVEL_LABELS[n]}".ljust(16)
        lines.append(f"{label} {value:>8,} |{_bar(value, top, bar_width)}")
    lines.append("")
    lines.append(f"Recommended: {res['recommended']:,}")
    lines.append(f"Maximum:     {res['maximum']:,}")
    if res.get("safetyNote"):
        lines.append(f"Note: {res['safetyNote']}")
    return "\n".join(lines)


def render_reading(reading: dict, level5: int, *, bar_width: int = 30) -> str:
    bar = _bar(int(reading["count"]), max(int(level5), 1), max(5, int(bar_width)))
    return f"{reading['time']}  {reading['count']:>8,}  L{reading['level']} {reading['label']:<13} |{bar}"
