"""
Layout region/anchor repair.

Runs after every content identifier is final. Guarantees that each identified
content element has exactly one anchor and that each anchor names an existing,
in-bounds region.
"""

from typing import Dict, List, Optional, Set

from slidespec.agents.config import GRID_COLS, GRID_ROWS
from slidespec.agents.generation.rules import clamp_region
from slidespec.models.slide_spec import Anchor, Region, SlideSpec
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)

HEADER_REGION = "header"
# Where unanchored body content goes, best first
BODY_REGION_PRIORITY = ("body", "main", "content", "left", "right", "aside")
# Only these are split into left/right columns
SPLITTABLE_REGIONS = ("body", "main", "content")
MIN_HEADER_ROWS = 2
LEFT_COLUMN_SHARE = 5 / 12


def ensure_regions(spec: SlideSpec) -> None:
    """A layout with no regions gets a header band over a body."""
    if spec.layout.regions:
        return
    spec.layout.regions = [
        Region(name=HEADER_REGION, rowStart=1, colStart=1, rowSpan=MIN_HEADER_ROWS, colSpan=GRID_COLS),
        Region(name="body", rowStart=MIN_HEADER_ROWS + 1, colStart=1,
               rowSpan=GRID_ROWS - MIN_HEADER_ROWS, colSpan=GRID_COLS),
    ]


def grow_header(spec: SlideSpec, request_id: Optional[str] = None) -> None:
    """Give a title + subtitle header two rows and clear its rows of other regions."""
    header = spec.layout.region(HEADER_REGION)
    if header is None:
        return

    if spec.content.subtitle is not None and header.rowSpan < MIN_HEADER_ROWS:
        header.rowStart = min(header.rowStart, GRID_ROWS - MIN_HEADER_ROWS + 1)
        delta = MIN_HEADER_ROWS - header.rowSpan
        header.rowSpan = MIN_HEADER_ROWS
        logger.info(f"[{request_id}] Header grown by {delta} row(s) to fit subtitle")

    # The header band owns its rows across every column: regions starting
    # inside it move below it, regions running into it from above end before it
    for region in spec.layout.regions:
        if region is header:
            continue
        if header.rowStart <= region.rowStart <= header.row_end:
            shift = header.row_end + 1 - region.rowStart
            region.rowStart += shift
            region.rowSpan = max(1, region.rowSpan - shift)
        elif region.rowStart < header.rowStart <= region.row_end:
            region.rowSpan = header.rowStart - region.rowStart
        clamp_region(region)


def _body_region(spec: SlideSpec, prefer: Optional[str] = None) -> Optional[Region]:
    if prefer:
        region = spec.layout.region(prefer)
        if region is not None:
            return region
    for name in BODY_REGION_PRIORITY:
        region = spec.layout.region(name)
        if region is not None:
            return region
    for region in spec.layout.regions:
        if region.name != HEADER_REGION:
            return region
    return spec.layout.regions[0] if spec.layout.regions else None


def split_body(spec: SlideSpec, request_id: Optional[str] = None) -> None:
    """Chart + bullets in a sparse layout: split the body into left/right columns."""
    content = spec.content
    if content.dataViz is None or not content.bullets or len(spec.layout.regions) >= 3:
        return
    body = next((spec.layout.region(n) for n in SPLITTABLE_REGIONS if spec.layout.region(n)), None)
    if body is None or body.colSpan < 2:
        return

    left_span = max(1, round(body.colSpan * LEFT_COLUMN_SHARE))
    left = Region(name="left", rowStart=body.rowStart, colStart=body.colStart,
                  rowSpan=body.rowSpan, colSpan=left_span)
    right = Region(name="right", rowStart=body.rowStart, colStart=body.colStart + left_span,
                   rowSpan=body.rowSpan, colSpan=body.colSpan - left_span)
    index = spec.layout.regions.index(body)
    spec.layout.regions[index:index + 1] = [left, right]

    chart_id = content.dataViz.id
    for anchor in spec.layout.anchors:
        if anchor.refId == chart_id:
            anchor.region = "right"
        elif anchor.region == body.name:
            anchor.region = "left"
    logger.info(f"[{request_id}] Split '{body.name}' into left/right ({left_span}/{right.colSpan} cols)")


def prune_anchors(spec: SlideSpec) -> None:
    """Drop anchors to missing regions, unknown content and duplicates."""
    region_names = {r.name for r in spec.layout.regions}
    content_ids = set(spec.content_ids())
    seen: Set[str] = set()
    kept: List[Anchor] = []
    for anchor in spec.layout.anchors:
        if anchor.region not in region_names or anchor.refId not in content_ids:
            continue
        if anchor.refId in seen:
            continue
        seen.add(anchor.refId)
        kept.append(anchor)
    dropped = len(spec.layout.anchors) - len(kept)
    if dropped:
        logger.info(f"Dropped {dropped} dangling/duplicate anchor(s)")
    spec.layout.anchors = kept


def synthesize_anchors(spec: SlideSpec) -> None:
    """Anchor every identified element that has no anchor yet."""
    anchored = {a.refId for a in spec.layout.anchors}
    next_order: Dict[str, int] = {}
    for anchor in spec.layout.anchors:
        next_order[anchor.region] = max(next_order.get(anchor.region, 0), anchor.order + 1)

    header = spec.layout.region(HEADER_REGION)
    text_ids = {spec.content.title.id}
    if spec.content.subtitle is not None:
        text_ids.add(spec.content.subtitle.id)
    chart_id = spec.content.dataViz.id if spec.content.dataViz is not None else None

    for ref_id in spec.content_ids():
        if ref_id in anchored:
            continue
        if ref_id in text_ids and header is not None:
            region = header
        elif ref_id == chart_id:
            region = _body_region(spec, prefer="right")
        else:
            region = _body_region(spec)
        if region is None:
            continue
        order = next_order.get(region.name, 0)
        spec.layout.anchors.append(Anchor(refId=ref_id, region=region.name, order=order))
        next_order[region.name] = order + 1
        anchored.add(ref_id)


def repair_layout(spec: SlideSpec, request_id: Optional[str] = None) -> SlideSpec:
    ensure_regions(spec)
    for region in spec.layout.regions:
        clamp_region(region)
    grow_header(spec, request_id)
    split_body(spec, request_id)
    prune_anchors(spec)
    synthesize_anchors(spec)
    return spec
