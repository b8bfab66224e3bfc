"""
Map pool selection for newly created matches.
"""
import logging
import os
import random
from typing import Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_GAME_MODE = 'Attrition'


def expand_map_pool(map_pool: List[Dict]) -> List[Dict]:
    """Expand configured maps into selectable entries.

    Maps with ``small_option`` contribute a second "(Small)" variant.
    """
    expanded = []
    for entry in map_pool or []:
        name = entry.get('name')
        if not name:
            continue
        game_mode = entry.get('game_mode', DEFAULT_GAME_MODE)
        expanded.append({
            'map_name': name,
            'game_mode': game_mode,
            'image': entry.get('image'),
            'is_small': False,
        })
        if entry.get('small_option'):
            expanded.append({
                'map_name': f"{name} (Small)",
                'game_mode': game_mode,
                'image': entry.get('image'),
                'is_small': True,
            })
    return expanded


def placeholder_maps(count: int) -> List[Dict]:
    return [
        {'map_name': f'Map {i + 1}', 'game_mode': DEFAULT_GAME_MODE, 'image': None, 'is_small': False}
        for i in range(count)
    ]


class MapSelector:
    """Picks maps for a match at random, without replacement.

    Pass a seeded ``random.Random`` as ``rng`` to get reproducible picks.
    """

    def __init__(self, map_pool: Optional[List[Dict]] = None, rng: Optional[random.Random] = None):
        self.maps = expand_map_pool(map_pool)
        self.rng = rng if rng is not None else random.Random()

    def select(self, count: int = 3) -> List[Dict]:
        if not self.maps:
            return placeholder_maps(count)
        picked = self.rng.sample(self.maps, min(count, len(self.maps)))
        return [dict(m) for m in picked]

    def __repr__(self):
        return f"MapSelector(maps={len(self.maps)})"


def load_map_pool(path: str) -> List[Dict]:
    """Load the configured map pool from a YAML file.

    The file holds either a list of maps or ``{'maps': [...]}``. A missing or
    unreadable file gives an empty pool, which selects placeholder maps.
    """
    if not path or not os.path.exists(path):
        return []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning(f'Failed to parse map pool {path}: {e}')
        return []
    if isinstance(data, dict):
        data = data.get('maps')
    if not isinstance(data, list):
        return []
    return [m for m in data if isinstance(m, dict)]
