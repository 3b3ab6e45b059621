"""Feed Control List resolution.

The control sheet maps every import column to its feed behaviour:

    Import field | Enabled | Feed name | Tag name | Units
    Import field | Stock feed | Feed name | ...          (stock variant)

Columns are located by header name, so their order in the sheet is free.
"""
from typing import Dict, Optional

import structlog

from marketfeed.errors.exceptions import ConfigurationError
from marketfeed.models.feed import FieldMapping, VariantPolicy
from marketfeed.models.sheet_table import SheetTable

logger = structlog.get_logger(__name__)

IMPORT_FIELD_HEADER = "Import field"
FEED_NAME_HEADER = "Feed name"
TAG_NAME_HEADER = "Tag name"
UNITS_HEADER = "Units"

FALSY_VALUES = frozenset({"false", "0", "no", "ні"})


def parse_enabled(raw: Optional[str], default: bool) -> bool:
    """Interpret an enable cell.

    Blank or missing cells take ``default``; anything outside the falsy set
    counts as enabled.
    """
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in FALSY_VALUES


def _enable_column(control: SheetTable, policy: VariantPolicy) -> Optional[int]:
    for name in policy.enable_columns:
        index = control.column_index(name)
        if index is not None:
            return index
    return None


def resolve_control_map(
    control: SheetTable,
    policy: VariantPolicy,
) -> Dict[str, FieldMapping]:
    """Build the import-field -> FieldMapping dictionary for one feed variant.

    Args:
        control: Feed Control List table
        policy: Variant switches (enable default, feed name fallback)

    Returns:
        Mapping keyed by import field name; duplicates resolve last-write-wins

    Raises:
        ConfigurationError: If the control table has no ``Import field`` column
    """
    log = logger.bind(variant=policy.variant.value)

    idx_import = control.column_index(IMPORT_FIELD_HEADER)
    if idx_import is None:
        raise ConfigurationError(
            f"Control table is missing the '{IMPORT_FIELD_HEADER}' column "
            f"(headers: {control.headers})"
        )

    idx_enabled = _enable_column(control, policy)
    idx_feed_name = control.column_index(FEED_NAME_HEADER)
    idx_tag_name = control.column_index(TAG_NAME_HEADER)
    idx_units = control.column_index(UNITS_HEADER)

    if idx_enabled is None:
        log.warning(
            "control_enable_column_missing",
            expected=list(policy.enable_columns),
            default_enabled=policy.enabled_by_default,
        )

    mapping: Dict[str, FieldMapping] = {}
    skipped_unnamed = 0

    for row in control.rows:
        import_field = control.cell(row, idx_import)
        if not import_field:
            continue

        enabled = parse_enabled(control.cell(row, idx_enabled), policy.enabled_by_default)

        output_name = control.cell(row, idx_feed_name) or ""
        if not output_name:
            if not policy.feed_name_fallback:
                skipped_unnamed += 1
                continue
            output_name = import_field

        if import_field in mapping:
            log.debug("control_row_overrides_previous", import_field=import_field)

        mapping[import_field] = FieldMapping(
            import_field=import_field,
            enabled=enabled,
            output_name=output_name,
            group_tag_name=control.cell(row, idx_tag_name) or "",
            units=control.cell(row, idx_units) or "",
        )

    log.debug(
        "control_map_resolved",
        fields=len(mapping),
        enabled=sum(1 for m in mapping.values() if m.enabled),
        skipped_unnamed=skipped_unnamed,
    )
    return mapping
