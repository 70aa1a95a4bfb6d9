"""
Game Renderer - ASCII visualization of the territory grid.

Renders the map as text for debugging and monitoring training, and builds
the read-only per-cell snapshot an external (canvas) renderer consumes.
"""

from typing import Dict, List, Optional, Tuple

from conquest.buildings import BuildingKind
from conquest.grid import Grid, Player


# Building symbols (second character of a cell)
BUILDING_SYMBOLS = {
    BuildingKind.FORT: 'F',
    BuildingKind.FARM: 'f',
    BuildingKind.TOWER: 'T',
    BuildingKind.BARRACKS: 'K',
    BuildingKind.WALL: '#',
    BuildingKind.MINE: 'M',
    BuildingKind.MARKET: '$',
}

OWNER_SYMBOLS = "abcdefghij"


def owner_symbols(players: Dict[str, Player]) -> Dict[str, str]:
    """One letter per player, in seating order."""
    return {pid: OWNER_SYMBOLS[i % len(OWNER_SYMBOLS)]
            for i, pid in enumerate(players)}


def snapshot_cells(grid: Grid, players: Dict[str, Player],
                   selected: Optional[Tuple[int, int]] = None) -> List[dict]:
    """Per-cell dicts in row-major order. Mutating them changes nothing."""
    cells = []
    for t in grid:
        owner = players.get(t.owner) if t.owner else None
        cells.append({
            "x": t.x,
            "y": t.y,
            "terrain": t.terrain.value,
            "owner": t.owner,
            "color": owner.color if owner else None,
            "troops": t.troops,
            "building": t.building.kind.value if t.building else None,
            "level": t.building.level if t.building else 0,
            "wall": t.wall,
            "selected": selected == t.position,
        })
    return cells


class GameRenderer:
    """ASCII renderer for grid visualization."""

    @staticmethod
    def render(grid: Grid, players: Dict[str, Player],
               day: Optional[int] = None, show_info: bool = True) -> str:
        """
        Render the grid as an ASCII string, two characters per cell:
        owner letter (or '.' neutral, '~' water) then building symbol.
        """
        symbols = owner_symbols(players)
        w = grid.width
        lines = []

        if show_info:
            header = f"Day: {day}  " if day is not None else ""
            counts = grid.territory_counts()
            header += "  ".join(
                f"{symbols[pid]}={p.name}[t={counts.get(pid, 0)} g={p.gold}]"
                for pid, p in players.items()
            )
            lines.append(header)
            lines.append("")

        lines.append("  " + "".join(f"{x % 10} " for x in range(w)))
        lines.append("  " + "-" * (2 * w))

        for y in range(grid.height):
            row = f"{y % 10}|"
            for x in range(w):
                t = grid.get(x, y)
                if t.is_water:
                    row += "~~"
                    continue
                if t.wall:
                    row += "##"
                    continue
                row += symbols.get(t.owner, "?") if t.owner else "."
                row += BUILDING_SYMBOLS[t.building.kind] if t.building else " "
            row += f"|{y % 10}"
            lines.append(row)

        lines.append("  " + "-" * (2 * w))

        if show_info:
            lines.append("")
            lines.append("Legend: F=Fort f=Farm T=Tower K=Barracks M=Mine "
                         "$=Market ##=Wall ~~=Water .=Neutral")

        return "\n".join(lines)

    @staticmethod
    def render_compact(grid: Grid, players: Dict[str, Player],
                       day: int) -> str:
        """Compact single-line rendering for logging."""
        counts = grid.territory_counts()
        parts = [f"{pid}[t={counts.get(pid, 0)} g={p.gold} "
                 f"tr={grid.troop_total(pid)}]"
                 for pid, p in players.items()]
        return f"D{day:03d} " + " ".join(parts)
