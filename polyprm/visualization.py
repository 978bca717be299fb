"""Visualization utilities: scene and roadmap figures, raster image, route GIF."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Polygon

import imageio.v2 as imageio

from .builder import Scene, placed_robot
from .configuration import RobotOrientation
from .local_planner import animate_road
from .polygons.polypoly import PolyPoly
from .polygons.raster import rasterize_to_array

logger = logging.getLogger(__name__)


def _outlines(poly: PolyPoly) -> List[np.ndarray]:
    return [np.array([(p.x, p.y) for p in cp.points()], dtype=float) for cp in poly.polygons]


def _add_polypoly(ax, poly: PolyPoly, facecolor: str, edgecolor: str, alpha: float) -> List[Polygon]:
    patches = []
    for pts in _outlines(poly):
        patch = Polygon(pts, closed=True, facecolor=facecolor, edgecolor=edgecolor, alpha=alpha)
        ax.add_patch(patch)
        patches.append(patch)
    return patches


def _heading_marker(ax, o: RobotOrientation, color: str, length: float) -> None:
    ax.scatter([o.x], [o.y], s=90, color=color, zorder=5)
    ax.annotate('', xy=(o.x + length * np.cos(o.angle), o.y + length * np.sin(o.angle)),
                xytext=(o.x, o.y), arrowprops=dict(arrowstyle='->', color=color), zorder=5)


def plot_scene(
    scene: Scene,
    road: Optional[List[RobotOrientation]] = None,
    show_roadmap: bool = True,
    show_pieces: bool = True,
    title: str = 'PRM roadmap + route',
):
    """Course, roadmap and route. The y axis points down like the polygon coordinates."""
    rm = scene.roadmap
    fig, ax = plt.subplots(figsize=(10, 6))

    ax.add_patch(Polygon([(rm.x1, rm.y1), (rm.x2, rm.y1), (rm.x2, rm.y2), (rm.x1, rm.y2)],
                         closed=True, facecolor='none', edgecolor='0.5', linestyle=':'))

    # Convex pieces of the course, outlined separately
    _add_polypoly(ax, scene.course, facecolor='0.6', edgecolor='0.25' if show_pieces else '0.6', alpha=0.8)

    if show_roadmap:
        segs = scene.roadmap.connections()
        for a, b in segs:
            ax.plot([a.x, b.x], [a.y, b.y], linewidth=0.6, color='tab:blue', alpha=0.35)
        nodes = scene.roadmap.all_nodes()
        if nodes:
            ax.scatter([o.x for o in nodes], [o.y for o in nodes], s=6, color='tab:blue', alpha=0.7)

    if road:
        ax.plot([o.x for o in road], [o.y for o in road], linewidth=2.8, color='green')
        for o in road:
            _add_polypoly(ax, placed_robot(scene.robot, o), facecolor='none', edgecolor='green', alpha=0.5)

    arrow = 0.05 * max(rm.x2 - rm.x1, rm.y2 - rm.y1)
    _heading_marker(ax, scene.start, 'red', arrow)
    _heading_marker(ax, scene.goal, 'blue', arrow)
    _add_polypoly(ax, placed_robot(scene.robot, scene.start), facecolor='red', edgecolor='darkred', alpha=0.4)
    _add_polypoly(ax, placed_robot(scene.robot, scene.goal), facecolor='blue', edgecolor='navy', alpha=0.4)

    ax.set_xlim(rm.x1, rm.x2)
    ax.set_ylim(rm.y2, rm.y1)
    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_aspect('equal', adjustable='box')
    ax.grid(False)
    fig.tight_layout()
    return fig, ax


def plot_raster(scene: Scene, width: int, height: int, title: str = 'Course raster'):
    """Scan-line rasterization of the course: outline cells dark, interior light."""
    rm = scene.roadmap
    image = rasterize_to_array(scene.course, rm.x1, rm.y1, rm.x2, rm.y2, width, height)
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.imshow(image, cmap='Greys', vmin=0, vmax=2, interpolation='nearest',
              extent=(rm.x1, rm.x2, rm.y2, rm.y1))
    ax.set_title(title)
    ax.set_aspect('equal', adjustable='box')
    fig.tight_layout()
    return fig, ax


def save_figure(fig: plt.Figure, path: str, dpi: int = 150) -> None:
    fig.savefig(path, dpi=dpi)
    plt.close(fig)


def make_gif(scene: Scene, road: List[RobotOrientation], out_gif_path: str, cfg: Dict[str, Any]) -> int:
    """Animate the robot along ``road``; returns the number of frames written.

    The background is drawn once and only the robot patches are moved per frame.
    """
    resolution = float(cfg.get('resolution', 0.25))
    max_frames = int(cfg.get('max_frames', 120))
    dpi = int(cfg.get('dpi', 100))

    steps = list(animate_road(scene.robot, road, resolution))
    if not steps:
        steps = [scene.start]
    if len(steps) > max_frames:
        keep = np.linspace(0, len(steps) - 1, max_frames).round().astype(int)
        steps = [steps[i] for i in keep]

    fig, ax = plot_scene(scene, road=None, show_roadmap=bool(cfg.get('show_roadmap', True)),
                         title=str(cfg.get('title', 'Route animation')))
    if road:
        ax.plot([o.x for o in road], [o.y for o in road], linewidth=1.5, color='green', linestyle='--')

    bot = _add_polypoly(ax, placed_robot(scene.robot, steps[0]), facecolor='orange', edgecolor='k', alpha=0.9)
    centre = Circle((steps[0].x, steps[0].y), 0.01 * (scene.roadmap.x2 - scene.roadmap.x1), color='k')
    ax.add_patch(centre)

    frames: List[np.ndarray] = []
    fig.set_dpi(dpi)
    for o in steps:
        placed = placed_robot(scene.robot, o)
        for patch, pts in zip(bot, _outlines(placed)):
            patch.set_xy(pts)
        centre.center = (o.x, o.y)
        fig.canvas.draw()
        frames.append(np.asarray(fig.canvas.buffer_rgba())[..., :3].copy())

    plt.close(fig)
    imageio.mimsave(out_gif_path, frames, duration=float(cfg.get('duration_s', 0.08)))
    logger.info("wrote %d frames to %s", len(frames), out_gif_path)
    return len(frames)
