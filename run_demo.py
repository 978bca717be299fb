#!/usr/bin/env python
"""Run the probabilistic roadmap demo.

Usage:
  python run_demo.py --config configs/demo_config.yaml --scene configs/demo_scene.yaml --seed 7

Outputs are written to outputs/<timestamp>/
"""

from __future__ import annotations

import argparse
import json
import logging
import random
from pathlib import Path
from datetime import datetime

import yaml

from polyprm.builder import build_from_spec, is_free
from polyprm.visualization import plot_scene, plot_raster, save_figure, make_gif


def load_yaml(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument('--config', type=str, default='configs/demo_config.yaml')
    ap.add_argument('--scene', type=str, default='configs/demo_scene.yaml')
    ap.add_argument('--out', type=str, default=None, help='output directory (default: outputs/<timestamp>)')
    ap.add_argument('--seed', type=int, default=None, help='random seed for sampling')
    args = ap.parse_args()

    root = Path(__file__).resolve().parent
    cfg = load_yaml(str(root / args.config))
    scene_data = load_yaml(str(root / args.scene))

    log_cfg = cfg.get('logging', {})
    logging.basicConfig(
        level=getattr(logging, str(log_cfg.get('level', 'INFO')).upper(), logging.INFO),
        format=str(log_cfg.get('format', '%(asctime)s %(levelname)s %(name)s: %(message)s')),
    )

    out_dir = Path(args.out) if args.out else (root / 'outputs' / datetime.now().strftime('%Y%m%d_%H%M%S'))
    out_dir.mkdir(parents=True, exist_ok=True)

    seed = args.seed if args.seed is not None else cfg.get('sampling', {}).get('seed')
    rng = random.Random(seed)

    scene = build_from_spec(cfg, scene_data, rng)
    if not is_free(scene, scene.start):
        raise RuntimeError(f"start configuration {scene.start} collides with the course")
    if not is_free(scene, scene.goal):
        raise RuntimeError(f"goal configuration {scene.goal} collides with the course")

    # Grow the roadmap
    s_cfg = cfg.get('sampling', {})
    neighbours = int(s_cfg.get('neighbours', 6))
    connect_dist = float(s_cfg.get('max_dist', 3.0))
    accepted = scene.prp.sample(
        n=int(s_cfg.get('samples', 150)),
        count=neighbours,
        max_dist=connect_dist,
        max_tries=int(s_cfg.get('max_tries', 3000)),
    )

    # Query
    q_cfg = cfg.get('query', {})
    road = scene.prp.road_from_to(
        scene.start,
        scene.goal,
        float(q_cfg.get('max_dist', connect_dist)),
        int(q_cfg.get('max_start_peers', 3)),
        int(q_cfg.get('max_goal_peers', 3)),
    )

    report = {
        'scene': scene.name,
        'seed': seed,
        'success': road is not None,
        'accepted_samples': accepted,
        'roadmap_nodes': scene.roadmap.num_nodes,
        'roadmap_edges': scene.roadmap.num_edges,
        'course_pieces': len(scene.course.polygons),
        'course_area': scene.course.area(),
        'start': str(scene.start),
        'goal': str(scene.goal),
    }
    if road is not None:
        report['road'] = [str(o) for o in road]
        report['road_length'] = sum(a.distance_to(b) for a, b in zip(road, road[1:]))

    if bool(cfg.get('debug', {}).get('save_roadmap', True)):
        (out_dir / 'roadmap.txt').write_text(str(scene.prp), encoding='utf-8')

    vis_cfg = cfg.get('visualization', {})
    dpi = int(vis_cfg.get('output_dpi', 150))

    fig, _ = plot_scene(scene, road=road, show_roadmap=False, title=f'{scene.name}: route')
    save_figure(fig, str(out_dir / 'scene.png'), dpi=dpi)

    fig2, _ = plot_scene(scene, road=road, show_roadmap=True, title=f'{scene.name}: roadmap')
    save_figure(fig2, str(out_dir / 'roadmap.png'), dpi=dpi)

    r_cfg = vis_cfg.get('raster', {})
    fig3, _ = plot_raster(scene, int(r_cfg.get('width', 200)), int(r_cfg.get('height', 120)))
    save_figure(fig3, str(out_dir / 'raster.png'), dpi=dpi)

    gif_cfg = vis_cfg.get('gif', {})
    if road is not None and bool(gif_cfg.get('enable', True)):
        report['gif_frames'] = make_gif(scene, road, str(out_dir / 'route.gif'), gif_cfg)

    with open(out_dir / 'report.json', 'w', encoding='utf-8') as f:
        json.dump(report, f, ensure_ascii=False, indent=2)

    print(f"[demo] Output directory: {out_dir}")
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0 if road is not None else 1


if __name__ == '__main__':
    raise SystemExit(main())
