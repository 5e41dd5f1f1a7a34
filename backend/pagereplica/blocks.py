"""
Group surveyed assets into semantic blocks.

Search inputs are pulled out first into a single SearchBlock (newsletter
and email boxes stay behind). The rest are grouped by parent key in
document order and each group gets the first rule it satisfies. Every
asset ends up in exactly one block.
"""

import re
from dataclasses import dataclass

from pagereplica.models import Asset, Block
from pagereplica.search import is_search_asset

HERO_VOCABULARY = re.compile(r"hero|banner|main", re.I)


@dataclass(frozen=True)
class BlockRules:
    hero_confidence: float = 0.85
    hero_vocabulary_confidence: float = 0.95
    product_grid_confidence: float = 0.9
    form_confidence: float = 0.8
    cta_confidence: float = 0.7
    generic_confidence: float = 0.5
    search_confidence: float = 0.9
    product_grid_min_images: int = 3
    form_min_inputs: int = 2


DEFAULT_RULES = BlockRules()


def _counts(assets: list[Asset]) -> dict:
    counts = {"input": 0, "button": 0, "image": 0, "icon": 0, "heading": 0, "link": 0, "video": 0}
    for asset in assets:
        counts[asset.type] += 1
    return counts


def _classnames(assets: list[Asset]) -> str:
    seen = []
    for asset in assets:
        for name in (asset.class_name or "").split():
            if name not in seen:
                seen.append(name)
    return " ".join(seen)


def group_by_parent(assets: list[Asset]) -> list[tuple[str, list[Asset]]]:
    """Group assets by parent key, keeping first-seen order."""
    groups: dict[str, list[Asset]] = {}
    for asset in assets:
        groups.setdefault(asset.parent_key or "root", []).append(asset)
    return list(groups.items())


def classify_blocks(assets: list[Asset], rules: BlockRules = DEFAULT_RULES) -> list[Block]:
    blocks = []

    search_assets = [a for a in assets if is_search_asset(a)]
    remaining = [a for a in assets if not is_search_asset(a)]

    if search_assets:
        blocks.append(Block(
            type="SearchBlock",
            parent_key=search_assets[0].parent_key,
            assets=search_assets,
            classnames=_classnames(search_assets),
            detection_reason=f"{len(search_assets)} search input(s), email/newsletter inputs excluded",
            confidence=rules.search_confidence,
        ))

    hero_assigned = False
    for parent_key, group in group_by_parent(remaining):
        counts = _counts(group)
        classnames = _classnames(group)
        hero_shaped = (counts["heading"] and counts["image"] and counts["button"]
                       and not counts["input"])
        grid_shaped = counts["image"] >= rules.product_grid_min_images and counts["link"] >= 1

        if hero_shaped and not hero_assigned:
            hero_assigned = True
            vocabulary = " ".join([classnames, parent_key] + [a.markup for a in group])
            if HERO_VOCABULARY.search(vocabulary):
                block_type, confidence = "Hero", rules.hero_vocabulary_confidence
                reason = "heading + image + button, hero/banner naming"
            else:
                block_type, confidence = "Hero", rules.hero_confidence
                reason = "heading + image + button, first such group"
        elif grid_shaped:
            block_type, confidence = "ProductGrid", rules.product_grid_confidence
            reason = f"{counts['image']} images with {counts['link']} link(s)"
        elif hero_shaped:
            block_type, confidence = "Generic", rules.generic_confidence
            reason = "hero-shaped but a hero was already assigned"
        elif counts["input"] >= rules.form_min_inputs and counts["button"]:
            block_type, confidence = "FormBlock", rules.form_confidence
            reason = f"{counts['input']} inputs with a button"
        elif counts["button"] and not counts["input"]:
            block_type, confidence = "CTA", rules.cta_confidence
            reason = f"{counts['button']} button(s), no inputs"
        else:
            block_type, confidence = "Generic", rules.generic_confidence
            reason = "no specific pattern"

        blocks.append(Block(
            type=block_type,
            parent_key=parent_key,
            assets=group,
            classnames=classnames,
            detection_reason=reason,
            confidence=confidence,
        ))

    summary = {}
    for block in blocks:
        summary[block.type] = summary.get(block.type, 0) + 1
    print(f"  [blocks] {len(blocks)} block(s): {summary}")
    return blocks
