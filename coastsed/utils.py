"""
Utility functions for coastsed: report tables and figures.
"""

import os
from typing import Any, Dict, List, Optional

import numpy as np
import matplotlib.pyplot as plt

from coastsed.budget import SedimentBudget
from coastsed.polygon import Coastline, SizeClass

COLUMN_WIDTH = 14

_SIZE_COLORS = {
    SizeClass.FINE: '#c2a878',
    SizeClass.SAND: '#e8c547',
    SizeClass.COARSE: '#7a6c5d',
}


def create_output_directory(output_dir: str) -> None:
    """
    Create output directory if it doesn't exist.

    Parameters
    ----------
    output_dir : str
        Path to output directory.
    """
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)


def _centre(text: Any, width: int = COLUMN_WIDTH) -> str:
    return str(text).center(width)


def _right(value: float, places: int = 3, width: int = COLUMN_WIDTH) -> str:
    return f'{value:{width}.{places}f}'


def _int(value: int, width: int = COLUMN_WIDTH) -> str:
    return f'{value:{width}d}'


def _rule(columns: int) -> str:
    return '|'.join(['-' * COLUMN_WIDTH] * columns) + '|'


def _row(cells: List[str]) -> str:
    return '|'.join(cells) + '|'


def _polygon_columns(coastline: Coastline, polygon) -> List[str]:
    return [_int(polygon.global_id), _int(coastline.coast), _int(polygon.coast_id)]


def format_share_table(coastline: Coastline) -> str:
    """
    Seawater volume, D50 and adjacent-polygon shares of every polygon.

    Only the adjacency list in each polygon's transport direction is shown.
    """
    lines = [
        f'Coastline {coastline.coast}: per-polygon seawater volume (m³), D50 (mm) '
        'and shares to adjacent polygons',
        _rule(5),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'), _centre('Seawater'),
              _centre('Uncons d50')]) + ' (Dir\'n Adj Share)...',
        _row([_centre('Global ID'), _centre(''), _centre('Coast ID'), _centre('Volume'), _centre('')]),
        _rule(5),
    ]
    for polygon in coastline:
        direction = 'DOWN' if polygon.down_coast_this_iter else 'UP'
        shares = ' '.join(
            f'({direction} {"edge" if neighbor.at_grid_edge else neighbor.polygon} {neighbor.share:.3f})'
            for neighbor in polygon.export_neighbors
        )
        lines.append(_row(_polygon_columns(coastline, polygon) + [
            _right(polygon.seawater_volume, 0), _right(polygon.avg_d50, 3)]) + ' ' + shares)
    lines.append(_rule(5))
    return '\n'.join(lines)


def format_sediment_table(coastline: Coastline, title: str, cell_area: float = 1.0) -> str:
    """
    Stored unconsolidated sediment per polygon and size class, as volumes.

    Parameters
    ----------
    coastline : Coastline
        Coastline to tabulate.
    title : str
        What the stored values represent at this point of the pass.
    cell_area : float, optional
        Multiplier converting cell-summed depths to volumes.
    """
    lines = [
        f'Coastline {coastline.coast}: per-polygon {title} (all m³)',
        _rule(7),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'), _centre('All'),
              _centre('Fine'), _centre('Sand'), _centre('Coarse')]),
        _rule(7),
    ]
    totals = {size: 0.0 for size in SizeClass}
    for polygon in coastline:
        volumes = {size: polygon.stored[size] * cell_area for size in SizeClass}
        for size, volume in volumes.items():
            totals[size] += volume
        lines.append(_row(_polygon_columns(coastline, polygon) + [_right(sum(volumes.values()))] + [
            _right(volumes[size]) for size in SizeClass]))
    lines.append(_rule(7))
    lines.append(_row(['TOTAL'.ljust(COLUMN_WIDTH * 3 + 2), _right(sum(totals.values()))] + [
        _right(totals[size]) for size in SizeClass]))
    return '\n'.join(lines)


def format_platform_sediment_table(coastline: Coastline, cell_area: float = 1.0) -> str:
    """
    Sand and coarse sediment derived from shore platform erosion, per polygon.

    Fine platform sediment goes to suspension, so its column is always zero.
    """
    lines = [
        f'Coastline {coastline.coast}: per-polygon unconsolidated sand/coarse sediment derived from '
        'erosion of the shore platform (all m³). Fine sediment goes to suspension.',
        _rule(7),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'), _centre('All'),
              _centre('Fine'), _centre('Sand'), _centre('Coarse')]),
        _rule(7),
    ]
    totals = {size: 0.0 for size in SizeClass}
    for polygon in coastline:
        volumes = {size: polygon.platform_sediment.get(size, 0.0) * cell_area for size in SizeClass}
        for size, volume in volumes.items():
            totals[size] += volume
        lines.append(_row(_polygon_columns(coastline, polygon) + [_right(sum(volumes.values()))] + [
            _right(volumes[size]) for size in SizeClass]))
    lines.append(_rule(7))
    lines.append(_row(['TOTAL from shore platform'.ljust(COLUMN_WIDTH * 3 + 2), _right(sum(totals.values()))]
                      + [_right(totals[size]) for size in SizeClass]))
    return '\n'.join(lines)


def format_cliff_collapse_table(coastline: Coastline, cell_area: float = 1.0) -> str:
    """
    Cliff collapse per polygon: sediment eroded from the cliff and where it went.

    Fine collapse debris goes to suspension; sand and coarse become talus on
    the polygon.
    """
    lines = [
        f'Coastline {coastline.coast}: per-polygon cliff collapse (all m³). Fine sediment goes to '
        'suspension, sand/coarse sediment becomes unconsolidated talus.',
        _rule(11),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'),
              _centre('All Eroded'), _centre('All Deposit'),
              _centre('Fine Eroded'), _centre('Suspension'),
              _centre('Sand Eroded'), _centre('Sand Talus'),
              _centre('Coarse Eroded'), _centre('Coarse Talus')]),
        _rule(11),
    ]
    totals = np.zeros(8)
    for polygon in coastline:
        eroded = polygon.cliff_collapse_erosion
        talus = polygon.cliff_collapse_talus
        values = np.array([
            sum(eroded.values()),
            sum(talus.values()),
            eroded[SizeClass.FINE],
            eroded[SizeClass.FINE],
            eroded[SizeClass.SAND],
            talus[SizeClass.SAND],
            eroded[SizeClass.COARSE],
            talus[SizeClass.COARSE],
        ]) * cell_area
        totals += values
        lines.append(_row(_polygon_columns(coastline, polygon) + [_right(value) for value in values]))
    lines.append(_rule(11))
    lines.append(_row(['TOTAL from cliff collapse'.ljust(COLUMN_WIDTH * 3 + 2)]
                      + [_right(value) for value in totals]))
    return '\n'.join(lines)


def format_potential_erosion_table(coastline: Coastline, cell_area: float = 1.0) -> str:
    lines = [
        f'Coastline {coastline.coast}: per-polygon potential erosion, all size classes (-ve, m³)',
        _rule(4),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'), _centre('Potential')]),
        _rule(4),
    ]
    total = 0.0
    for polygon in coastline:
        volume = polygon.potential_erosion * cell_area
        total += volume
        lines.append(_row(_polygon_columns(coastline, polygon) + [_right(volume)]))
    lines.append(_rule(4))
    lines.append(_row(['TOTAL potential erosion'.ljust(COLUMN_WIDTH * 3 + 2), _right(total)]))
    return '\n'.join(lines)


def format_sorted_sequence_table(coastline: Coastline, order) -> str:
    """Processing sequence with each polygon's targets and any X -> Y -> X circularities."""
    lines = [
        f'Coastline {coastline.coast}: sorted sequence of polygon processing, and any circularities',
        _rule(6),
        _row([_centre('From Polygon'), _centre('Coast'), _centre('From Polygon'), _centre('Direction'),
              _centre('To Polygon'), _centre('Circularity?')]),
        _row([_centre('Global ID'), _centre(''), _centre('Coast ID'), _centre(''),
              _centre('Coast ID'), _centre('')]),
        _rule(6),
    ]
    for key in order.keys:
        polygon = coastline[key.coast_id]
        targets = ', '.join('edge' if target is None else str(target) for target in key.neighbors)
        circular = ', '.join(str(partner) for partner in polygon.circularities)
        lines.append(_row(_polygon_columns(coastline, polygon) + [
            _centre('DOWN' if key.down_coast else 'UP'),
            targets.rjust(COLUMN_WIDTH),
            _centre(circular),
        ]))
    lines.append(_rule(6))
    return '\n'.join(lines)


def format_actual_movement_table(coastline: Coastline, order, budget: SedimentBudget,
                                 cell_area: float = 1.0) -> str:
    """
    Per-polygon erosion (-ve) and deposition (+ve) after a routing pass.

    Fine sediment is shown as going to suspension. Sediment lost from the grid
    is listed as a final row and counted with deposition.
    """
    header_sizes = [SizeClass.SAND, SizeClass.COARSE]
    lines = [
        f'Coastline {coastline.coast}: per-polygon erosion (-ve) and deposition (+ve) of '
        'unconsolidated sediment (all m³). Fine sediment is moved to suspension, not deposited.',
        _rule(11),
        _row([_centre('Polygon'), _centre('Coast'), _centre('Polygon'),
              _centre('All Erosion'), _centre('All Deposit'),
              _centre('Fine Erosion'), _centre('Suspension')]
             + [_centre(f'{size.value.title()} {term}') for size in header_sizes
                for term in ('Erosion', 'Deposit')]),
        _rule(11),
    ]
    totals = np.zeros(8)
    for key in order.keys:
        polygon = coastline[key.coast_id]
        values = np.array([
            polygon.total_erosion,
            polygon.total_deposition,
            polygon.erosion[SizeClass.FINE],
            -polygon.erosion[SizeClass.FINE],
            polygon.erosion[SizeClass.SAND],
            polygon.deposition[SizeClass.SAND],
            polygon.erosion[SizeClass.COARSE],
            polygon.deposition[SizeClass.COARSE],
        ]) * cell_area
        totals += values
        lines.append(_row(_polygon_columns(coastline, polygon) + [_right(value) for value in values]))

    lost = np.array([
        0.0,
        budget.total('lost_from_grid'),
        0.0, 0.0,
        0.0, budget.lost_from_grid[SizeClass.SAND],
        0.0, budget.lost_from_grid[SizeClass.COARSE],
    ]) * cell_area
    if lost.any():
        totals += lost
        lines.append(_row(['Lost from grid'.ljust(COLUMN_WIDTH * 3 + 2)] + [_right(value) for value in lost]))

    lines.append(_rule(11))
    lines.append(_row(['TOTAL'.ljust(COLUMN_WIDTH * 3 + 2)] + [_right(value) for value in totals]))
    return '\n'.join(lines)


def plot_polygon_budget(
    coastline: Coastline,
    step: int = 0,
    cell_area: float = 1.0,
    output_dir: str = './output',
) -> str:
    """
    Plot per-polygon erosion and deposition by size class.

    Parameters
    ----------
    coastline : Coastline
        Coastline after a routing pass.
    step : int, optional
        Iteration number, used in the title and file name.
    cell_area : float, optional
        Multiplier converting cell-summed depths to volumes.
    output_dir : str, optional
        Output directory.

    Returns
    -------
    str
        Path of the saved figure.
    """
    create_output_directory(output_dir)

    ids = np.array([polygon.coast_id for polygon in coastline])
    width = 0.4

    fig, axes = plt.subplots(2, 1, figsize=(10, 7), sharex=True)

    bottom_erosion = np.zeros(len(ids))
    bottom_deposition = np.zeros(len(ids))
    for size in SizeClass:
        erosion = np.array([polygon.erosion[size] for polygon in coastline]) * cell_area
        deposition = np.array([polygon.deposition[size] for polygon in coastline]) * cell_area
        axes[0].bar(ids - width / 2, erosion, width, bottom=bottom_erosion,
                    color=_SIZE_COLORS[size], label=f'{size.value} erosion')
        axes[0].bar(ids + width / 2, deposition, width, bottom=bottom_deposition,
                    color=_SIZE_COLORS[size], hatch='//', edgecolor='k', linewidth=0.3,
                    label=f'{size.value} deposition')
        bottom_erosion += erosion
        bottom_deposition += deposition
    axes[0].axhline(0.0, color='k', linewidth=0.8)
    axes[0].set_ylabel('Volume [m³]')
    axes[0].set_title('Erosion (-ve) and deposition (+ve)')
    axes[0].legend(fontsize='small', ncol=3)

    # Stored sediment after the pass
    bottom = np.zeros(len(ids))
    for size in SizeClass:
        stored = np.array([polygon.stored[size] for polygon in coastline]) * cell_area
        axes[1].bar(ids, stored, 0.8, bottom=bottom, color=_SIZE_COLORS[size], label=size.value)
        bottom += stored
    axes[1].set_ylabel('Stored [m³]')
    axes[1].set_xlabel('Polygon (coast ID, up-coast to down-coast)')
    axes[1].legend(fontsize='small')

    # Mark circularities and drift direction
    for polygon in coastline:
        arrow = '→' if polygon.down_coast_this_iter else '←'
        marker = '*' if polygon.circularities else ''
        axes[1].annotate(arrow + marker, (polygon.coast_id, 0), textcoords='offset points',
                         xytext=(0, -22), ha='center', fontsize=9)

    plt.suptitle(f'Coastline {coastline.coast}, iteration {step}')
    plt.tight_layout()

    path = os.path.join(output_dir, f'coast_{coastline.coast:02d}_step_{step:04d}.png')
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_budget_history(
    history: List[Dict[str, Any]],
    cell_area: float = 1.0,
    output_dir: str = './output',
    filename: str = 'budget_history.png',
) -> Optional[str]:
    """
    Plot the cumulative sediment budget over a run.

    Parameters
    ----------
    history : list of dict
        Saved iteration outputs, each with ``step``, ``budget`` (from
        ``SedimentBudget.as_dict``) and ``carry_forward`` entries.
    cell_area : float, optional
        Multiplier converting cell-summed depths to volumes.
    output_dir : str, optional
        Output directory.
    filename : str, optional
        Name of the saved figure.

    Returns
    -------
    str or None
        Path of the saved figure, or None if there is nothing to plot.
    """
    if not history:
        return None
    create_output_directory(output_dir)

    steps = np.array([entry['step'] for entry in history])
    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))

    for ax, size in zip(axes, (SizeClass.SAND, SizeClass.COARSE)):
        for term, style in (('eroded', '-'), ('deposited', '--'), ('lost_from_grid', ':')):
            series = np.cumsum([entry['budget'][term][size.value] for entry in history]) * cell_area
            ax.plot(steps, series, style, label=term.replace('_', ' '))
        carry = np.array([entry['carry_forward'][size.value] for entry in history]) * cell_area
        ax.plot(steps, carry, '-.', label='carry-forward')
        ax.set_title(f'{size.value.title()}')
        ax.set_xlabel('Iteration')
        ax.set_ylabel('Cumulative volume [m³]')
        ax.legend(fontsize='small')

    plt.tight_layout()
    path = os.path.join(output_dir, filename)
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path
