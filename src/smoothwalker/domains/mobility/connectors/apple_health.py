"""Apple Health XML export loader.

Parses the ``export.xml`` file produced by Apple Health (iOS → Share → Export
Health Data) into quantity samples for the mobility data types, and loads
them into an in-memory store. Uses iterparse so large exports are processed
incrementally.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import Counter
from datetime import datetime
from pathlib import Path

from smoothwalker.domains.mobility.connectors.memory_store import InMemoryHealthStore
from smoothwalker.domains.mobility.connectors.types import QuantitySample
from smoothwalker.domains.mobility.data_types import get_sample_type
from smoothwalker.domains.mobility.units import (
    PERCENT,
    IncompatibleUnitError,
    Quantity,
    UnknownUnitError,
    get_unit,
)

logger = logging.getLogger(__name__)


class AppleHealthParseError(Exception):
    """Raised when parsing Apple Health export XML fails."""


def _parse_date(date_str: str) -> datetime:
    """Parse Apple Health date format: '2025-12-01 08:30:00 -0500'."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        return datetime.fromisoformat(date_str)


def _parse_record(elem: ET.Element) -> QuantitySample | None:
    sample_type = get_sample_type(elem.get("type", ""))
    if sample_type is None:
        return None

    start_str = elem.get("startDate", "")
    end_str = elem.get("endDate", "") or start_str
    value_str = elem.get("value", "")
    if not start_str or not value_str:
        return None

    unit_str = elem.get("unit", "") or sample_type.default_unit.symbol
    unit = get_unit(unit_str)
    value = float(value_str)
    quantity = Quantity(value, unit)
    if not quantity.is_compatible(sample_type.default_unit):
        raise IncompatibleUnitError(
            f"{unit} is not a unit of {sample_type.identifier} ({sample_type.default_unit.dimension})"
        )
    # Percentages are exported as fractions (0.12 = 12%)
    if unit == PERCENT and value <= 1:
        quantity = Quantity(value * 100, unit)

    return QuantitySample(
        sample_type=sample_type,
        quantity=quantity,
        start_date=_parse_date(start_str),
        end_date=_parse_date(end_str),
        source_name=elem.get("sourceName", ""),
    )


def parse_apple_health_export(export_path: str | Path) -> list[QuantitySample]:
    """Parse mobility records from an Apple Health export.xml.

    Records of other types, and records with unparseable dates, values or
    units, are skipped.

    Raises:
        AppleHealthParseError: If the file is missing or is not valid XML.
    """
    path = Path(export_path)
    if not path.exists():
        raise AppleHealthParseError(f"Export file not found: {path}")

    samples: list[QuantitySample] = []
    skipped = 0
    try:
        for _, elem in ET.iterparse(str(path), events=("end",)):
            if elem.tag != "Record":
                continue
            try:
                sample = _parse_record(elem)
            except (ValueError, TypeError, UnknownUnitError, IncompatibleUnitError) as exc:
                logger.debug("Skipping record: %s", exc)
                skipped += 1
                sample = None
            if sample is not None:
                samples.append(sample)
            elem.clear()
    except ET.ParseError as exc:
        raise AppleHealthParseError(f"Invalid XML: {exc}") from exc

    counts = Counter(s.sample_type.identifier for s in samples)
    logger.info(
        "Parsed Apple Health export: %d mobility samples across %d types (%d skipped)",
        len(samples), len(counts), skipped,
    )
    return samples


def load_apple_health_export(export_path: str | Path, store: InMemoryHealthStore) -> int:
    """Parse ``export_path`` and save its mobility samples into ``store``.

    Returns:
        Number of samples loaded.
    """
    samples = parse_apple_health_export(export_path)
    store.save(samples)
    return len(samples)
