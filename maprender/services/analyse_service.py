"""Parsing and checking of uploaded csv data against a topology."""

import io
import logging
from typing import Optional

import pandas as pd

from ..models.analyse import AnalyseRequest, AnalyseResponse, Message, MessageLevel
from ..models.render_request import DataRow
from ..models.topology import Feature
from .choropleth_service import format_value
from .classification_service import ClassificationService
from .topology_service import TopologyService

logger = logging.getLogger(__name__)

# Number of example ids listed in a message
MAX_EXAMPLES = 10


class AnalyseError(Exception):
    """Raised when the csv cannot be used at all (unparseable, or columns out of range)."""


def parse_csv(text: str, has_header_row: bool) -> pd.DataFrame:
    """Parse csv text into a frame of strings."""
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            header=0 if has_header_row else None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError as e:
        raise AnalyseError("The csv file is empty") from e
    except pd.errors.ParserError as e:
        raise AnalyseError(f"Unable to parse the csv file: {e}") from e
    return frame.fillna("")


def _examples(items: list[str]) -> str:
    shown = ", ".join(items[:MAX_EXAMPLES])
    if len(items) > MAX_EXAMPLES:
        shown += ", ..."
    return shown


def feature_ids(features: list[Feature], id_property: str) -> list[str]:
    """Region ids as they are matched against data rows."""
    ids = []
    for feature in features:
        value = feature.properties.get(id_property)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = format_value(value)
        if isinstance(value, str) and value:
            ids.append(value)
        elif feature.id:
            ids.append(feature.id)
    return ids


def extract_rows(frame: pd.DataFrame, request: AnalyseRequest) -> tuple[list[DataRow], list[Message]]:
    """Pull the id and value columns out of the frame, reporting unusable rows."""
    column_count = frame.shape[1]
    for name, index in (("id", request.id_index), ("value", request.value_index)):
        if index >= column_count:
            raise AnalyseError(
                f"The {name} column index {index} is out of range: the csv has {column_count} columns"
            )

    first_line = 2 if request.has_header_row else 1
    ids = frame.iloc[:, request.id_index].astype(str).str.strip()
    raw_values = frame.iloc[:, request.value_index].astype(str).str.strip()
    values = pd.to_numeric(raw_values.str.replace(",", "", regex=False), errors="coerce")

    rows: list[DataRow] = []
    messages: list[Message] = []
    missing_id: list[str] = []
    invalid: list[str] = []
    duplicates: list[str] = []
    seen: set[str] = set()

    for position, (row_id, value) in enumerate(zip(ids, values)):
        line = str(position + first_line)
        if not row_id:
            missing_id.append(line)
            continue
        if pd.isna(value):
            invalid.append(line)
            continue
        if row_id in seen:
            duplicates.append(row_id)
            continue
        seen.add(row_id)
        rows.append(DataRow(id=row_id, value=float(value)))

    if missing_id:
        messages.append(Message(
            level=MessageLevel.WARN,
            text=f"{len(missing_id)} rows have no id and were ignored (lines: {_examples(missing_id)})",
        ))
    if invalid:
        messages.append(Message(
            level=MessageLevel.WARN,
            text=f"{len(invalid)} rows do not have a numeric value and were ignored (lines: {_examples(invalid)})",
        ))
    if duplicates:
        messages.append(Message(
            level=MessageLevel.WARN,
            text=f"{len(duplicates)} rows repeat an earlier id and were ignored: {_examples(duplicates)}",
        ))
    return rows, messages


def match_topology(rows: list[DataRow], features: list[Feature], id_property: str) -> list[Message]:
    """Report data rows without a region, and regions without data."""
    if not features:
        return [Message(level=MessageLevel.WARN, text="The topology does not contain any regions")]

    region_ids = feature_ids(features, id_property)
    region_set = set(region_ids)
    row_set = {row.id for row in rows}

    messages = []
    unmatched = [row.id for row in rows if row.id not in region_set]
    if unmatched:
        messages.append(Message(
            level=MessageLevel.WARN,
            text=f"{len(unmatched)} rows do not match a region in the topology: {_examples(unmatched)}",
        ))
    no_data = [region_id for region_id in region_ids if region_id not in row_set]
    if no_data:
        messages.append(Message(
            level=MessageLevel.INFO,
            text=f"{len(no_data)} regions have no data: {_examples(no_data)}",
        ))
    return messages


def analyse(request: AnalyseRequest, classifier: Optional[ClassificationService] = None) -> AnalyseResponse:
    """Parse the csv, check it against the topology and compute natural breaks.

    Raises:
        AnalyseError: If the csv cannot be parsed or the column indexes are
            out of range.
    """
    classifier = classifier or ClassificationService()
    frame = parse_csv(request.csv, request.has_header_row)
    rows, messages = extract_rows(frame, request)

    features = TopologyService().decode(request.geography.topojson)
    messages.extend(match_topology(rows, features, request.geography.id_property))

    if not rows:
        messages.append(Message(level=MessageLevel.ERROR, text="The csv does not contain any usable data"))
        return AnalyseResponse(
            data=rows,
            messages=messages,
            breaks=[[] for _ in range(classifier.min_classes, classifier.max_classes + 1)],
        )

    result = classifier.classify([row.value for row in rows])
    if result.omitted:
        first, last = result.omitted[0], result.omitted[-1]
        counts = str(first) if first == last else f"{first} to {last}"
        messages.append(Message(
            level=MessageLevel.WARN,
            text=(
                f"Unable to calculate breaks for {counts} classes: "
                f"the data only has {result.distinct_count} distinct values"
            ),
        ))

    messages.append(Message(
        level=MessageLevel.INFO,
        text=f"Read {len(rows)} rows; suggested number of classes: {result.best_fit_class_count}",
    ))

    logger.info("Analysed %d rows against %d regions", len(rows), len(features))
    return AnalyseResponse(
        data=rows,
        messages=messages,
        breaks=result.breaks,
        best_fit_class_count=result.best_fit_class_count,
        min_value=result.min_value,
        max_value=result.max_value,
    )
