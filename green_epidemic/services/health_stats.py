"""
health_stats.py — Bulk health statistics: listing with totals, manual entry, CSV import.

CSV format
----------
First line is a header; column names are matched case-insensitively with
spaces and underscores ignored, so "diseaseType", "disease_type" and
"DiseaseType" are the same column. Required columns: province, diseasetype,
casecount, reportdate. Unknown columns are ignored.

Each data row is validated on its own. Bad rows are reported back as
"Row N: ..." (N is the line number in the file) and the good rows are
inserted in one bulk write.
"""

import csv
import io
import logging
import math
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from green_epidemic.models.health_stats import (
    BulkHealthStatCreate,
    BulkHealthStatList,
    BulkHealthStatOut,
    BulkHealthStatQuery,
    BulkHealthSummary,
    CsvImportRequest,
    CsvImportResult,
    CsvImportSummary,
    DiseaseTotal,
    PagePagination,
    ProvinceTotal,
)
from green_epidemic.services.queries import NEWEST_REPORTS_FIRST, bulk_stat_filter, totals_by

logger = logging.getLogger(__name__)

COLLECTION = "bulk_health_stats"

REQUIRED_COLUMNS = ("province", "diseasetype", "casecount", "reportdate")
_CSV_FIELDS = {
    "province": "province",
    "district": "district",
    "subdistrict": "subdistrict",
    "postcode": "postcode",
    "latitude": "latitude",
    "longitude": "longitude",
    "diseasetype": "disease_type",
    "casecount": "case_count",
    "populationcount": "population_count",
    "severity": "severity",
    "agegroup": "age_group",
    "gender": "gender",
    "reportdate": "report_date",
    "periodtype": "period_type",
    "notes": "notes",
}
MAX_REPORTED_ERRORS = 50


class CsvImportError(ValueError):
    """The upload as a whole cannot be imported; *errors* lists row problems, if any."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


def doc_to_stat(doc: dict) -> BulkHealthStatOut:
    return BulkHealthStatOut(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})


def _stat_doc(stat: BulkHealthStatCreate, *, source_type: str, reported_by: str, now: datetime) -> dict:
    return {
        **stat.model_dump(),
        "source_type": source_type,
        "reported_by": reported_by,
        "created_at": now,
    }


def _column_key(header: str) -> str:
    return header.strip().lower().replace("_", "").replace(" ", "")


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


# ── Listing ───────────────────────────────────────────────────────────────────

async def list_stats(db: AsyncIOMotorDatabase, query: BulkHealthStatQuery) -> BulkHealthStatList:
    filt = bulk_stat_filter(query)
    collection = db[COLLECTION]

    total = await collection.count_documents(filt)
    cursor = (
        collection.find(filt)
        .sort(NEWEST_REPORTS_FIRST)
        .skip((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    statistics = [doc_to_stat(doc) async for doc in cursor]

    disease_stats = [
        DiseaseTotal(disease_type=row["_id"], case_count=row["case_count"], records=row["records"])
        async for row in collection.aggregate(totals_by("disease_type", filt))
    ]
    province_stats = [
        ProvinceTotal(province=row["_id"], case_count=row["case_count"], records=row["records"])
        async for row in collection.aggregate(totals_by("province", filt))
    ]

    return BulkHealthStatList(
        statistics=statistics,
        pagination=PagePagination(
            current_page=query.page,
            total_pages=math.ceil(total / query.limit),
            total_count=total,
            has_next_page=query.page * query.limit < total,
            has_previous_page=query.page > 1,
        ),
        summary=BulkHealthSummary(
            disease_stats=disease_stats,
            province_stats=province_stats,
            total_cases=sum(d.case_count for d in disease_stats),
        ),
    )


# ── Writing ───────────────────────────────────────────────────────────────────

async def create_stat(db: AsyncIOMotorDatabase, stat: BulkHealthStatCreate, reported_by: str) -> BulkHealthStatOut:
    doc = _stat_doc(stat, source_type="MANUAL", reported_by=reported_by, now=datetime.now(tz=timezone.utc))
    result = await db[COLLECTION].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Bulk statistic %s added by %s: %s %s", result.inserted_id, reported_by, stat.province, stat.disease_type)
    return doc_to_stat(doc)


def parse_csv(
    csv_text: str, *, source_reference: str, reported_by: str, now: datetime,
) -> tuple[list[dict], list[str], int]:
    """
    Parse *csv_text* into insertable documents.

    Returns (documents, row_errors, data_row_count). Raises CsvImportError
    when the header is missing required columns or there are no data rows.
    """
    reader = csv.DictReader(io.StringIO(csv_text))
    if not reader.fieldnames:
        raise CsvImportError("CSV file must contain at least a header and one data row")

    columns = {_column_key(h): h for h in reader.fieldnames if h}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise CsvImportError(
            f"Missing required columns: {', '.join(missing)}. Required: {', '.join(REQUIRED_COLUMNS)}"
        )

    docs: list[dict] = []
    errors: list[str] = []
    total = 0
    for row in reader:
        total += 1
        line = reader.line_num
        # Extra cells land under the None key; short rows get None values.
        if None in row or any(value is None for value in row.values()):
            errors.append(f"Row {line}: Column count mismatch")
            continue

        values = {
            _CSV_FIELDS[key]: row[header].strip()
            for key, header in columns.items()
            if key in _CSV_FIELDS and row[header].strip()
        }
        try:
            stat = BulkHealthStatCreate(**values, source_reference=source_reference)
        except ValidationError as exc:
            errors.append(f"Row {line}: {_describe(exc)}")
            continue
        docs.append(_stat_doc(stat, source_type="CSV_IMPORT", reported_by=reported_by, now=now))

    if total == 0:
        raise CsvImportError("CSV file must contain at least a header and one data row")
    return docs, errors, total


async def import_csv(db: AsyncIOMotorDatabase, request: CsvImportRequest, reported_by: str) -> CsvImportResult:
    docs, errors, total = parse_csv(
        request.csv_text,
        source_reference=request.source_reference or request.filename,
        reported_by=reported_by,
        now=datetime.now(tz=timezone.utc),
    )
    if not docs:
        raise CsvImportError("No valid records found to import", errors[:MAX_REPORTED_ERRORS])

    await db[COLLECTION].insert_many(docs)
    logger.info(
        "CSV import %s by %s: %d rows, %d imported, %d rejected",
        request.filename, reported_by, total, len(docs), len(errors),
    )
    return CsvImportResult(
        message="CSV import completed",
        summary=CsvImportSummary(total_rows=total, imported=len(docs), rejected=len(errors)),
        errors=errors[:MAX_REPORTED_ERRORS],
    )
