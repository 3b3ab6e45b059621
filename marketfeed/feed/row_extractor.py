"""Import row -> OfferRecord extraction."""
from typing import Dict, List, Mapping, Sequence

import structlog

from marketfeed.feed.normalizer import convert_physical, process_tag_param_value, with_units
from marketfeed.models.feed import (
    CELL_IMAGE_SENTINEL,
    CORE_TAGS,
    DIMENSION_TAGS,
    WEIGHT_TAG,
    FieldMapping,
    OfferRecord,
    ParseFailurePolicy,
    TagParam,
)
from marketfeed.models.sheet_table import SheetTable

logger = structlog.get_logger(__name__)

PHYSICAL_TAGS = frozenset(DIMENSION_TAGS + (WEIGHT_TAG,))


def extract_offer(
    row: Sequence[str],
    headers: Sequence[str],
    control_map: Mapping[str, FieldMapping],
    on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT,
) -> OfferRecord:
    """Walk one import row in header order and collect its feed fields.

    A cell is skipped when its header is blank, it is empty, it holds the
    ``CellImage`` placeholder, or its column is unmapped or disabled.
    ``image_*`` columns feed the picture list, ``tags`` columns feed params,
    everything else becomes a scalar field.
    """
    core_fields: Dict[str, str] = {}
    extra_fields: Dict[str, str] = {}
    images: List[str] = []
    tags: List[TagParam] = []

    for index, header in enumerate(headers):
        if not header:
            continue

        value = SheetTable.cell(row, index)
        if not value or value == CELL_IMAGE_SENTINEL:
            continue

        mapping = control_map.get(header)
        if mapping is None or not mapping.enabled:
            continue

        if mapping.is_image:
            images.append(value)
            continue

        if mapping.is_tags:
            group_name = mapping.group_tag_name or header
            tags.extend(process_tag_param_value(group_name, value, mapping.units))
            continue

        name = mapping.output_name
        if name in PHYSICAL_TAGS:
            text = convert_physical(name, value, mapping.units, on_parse_failure)
            if text is None:
                logger.debug(
                    "physical_value_unparseable",
                    field=name,
                    column=header,
                    value=value,
                )
                continue
        else:
            text = with_units(value, mapping.units)

        if name in CORE_TAGS:
            core_fields[name] = text
        else:
            extra_fields[name] = text

    return OfferRecord(
        core_fields=core_fields,
        extra_fields=extra_fields,
        images=tuple(images),
        tags=tuple(tags),
    )
