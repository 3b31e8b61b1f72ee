from collections import defaultdict
from typing import Iterable, Sequence

from .types import Regimen


def group_by_cancer_type(regimens: Iterable[Regimen], order: Sequence[str] = ()) -> dict[str, list[Regimen]]:
    """
    Group regimens by cancer_type. Keys listed in `order` come first (and are
    present even when empty); any other cancer types follow in first-seen order.
    """
    buckets: dict[str, list[Regimen]] = defaultdict(list)
    for r in regimens:
        buckets[r.cancer_type].append(r)
    grouped = {key: list(buckets.get(key, ())) for key in order}
    for key, rs in buckets.items():
        grouped.setdefault(key, rs)
    return grouped


def group_by_scenario(regimens: Iterable[Regimen], scenario_order: dict[str, int]) -> dict[str, list[Regimen]]:
    """
    Group regimens by treatment scenario, sorted by the scenario's display order.
    Unknown scenarios sort last.
    """
    buckets: dict[str, list[Regimen]] = defaultdict(list)
    for r in regimens:
        buckets[r.scenario].append(r)
    keys = sorted(buckets, key=lambda s: (scenario_order.get(s, len(scenario_order) + 1), s))
    return {key: buckets[key] for key in keys}
