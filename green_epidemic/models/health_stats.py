"""
health_stats.py — Aggregate case counts reported by health authorities.

Unlike community reports, a bulk statistic is one row per area, disease and
period ("42 dengue cases in Chiang Mai this week"). Admins add rows one at a
time or import them from CSV.

BulkHealthStatCreate   — POST /admin/bulk-health-stats
BulkHealthStatOut      — stored row
BulkHealthStatQuery    — GET /admin/bulk-health-stats filters + page
BulkHealthStatList     — page of rows + per-disease / per-province totals
CsvImportRequest / CsvImportResult — POST /admin/bulk-health-stats/import
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

PeriodType = Literal["DAILY", "WEEKLY", "MONTHLY", "YEARLY"]
SourceType = Literal["MANUAL", "CSV_IMPORT"]


class BulkHealthStatCreate(BaseModel):
    province: str = Field(min_length=1, max_length=100)
    district: Optional[str] = Field(default=None, max_length=100)
    subdistrict: Optional[str] = Field(default=None, max_length=100)
    postcode: Optional[str] = Field(default=None, max_length=10)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    disease_type: str = Field(min_length=1, max_length=100)
    case_count: int = Field(ge=0)
    population_count: Optional[int] = Field(default=None, ge=0)
    severity: Optional[str] = Field(default=None, max_length=50)
    age_group: Optional[str] = Field(default=None, max_length=50)
    gender: Optional[str] = Field(default=None, max_length=20)
    report_date: datetime
    period_type: PeriodType = "DAILY"
    source_reference: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BulkHealthStatOut(BulkHealthStatCreate):
    id: str
    source_type: SourceType = "MANUAL"
    reported_by: Optional[str] = None
    created_at: datetime


class BulkHealthStatQuery(BaseModel):
    """Filters accepted by GET /admin/bulk-health-stats; text filters are case-insensitive substrings."""
    province: Optional[str] = None
    district: Optional[str] = None
    disease_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=200)


class PagePagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_previous_page: bool


class DiseaseTotal(BaseModel):
    disease_type: str
    case_count: int
    records: int


class ProvinceTotal(BaseModel):
    province: str
    case_count: int
    records: int


class BulkHealthSummary(BaseModel):
    disease_stats: list[DiseaseTotal]
    province_stats: list[ProvinceTotal]
    total_cases: int


class BulkHealthStatList(BaseModel):
    statistics: list[BulkHealthStatOut]
    pagination: PagePagination
    summary: BulkHealthSummary


class CsvImportRequest(BaseModel):
    """CSV content is sent inline, the same way media uploads travel as JSON."""
    csv_text: str = Field(min_length=1)
    filename: str = Field(default="import.csv", max_length=200)
    source_reference: Optional[str] = Field(default=None, max_length=300)


class CsvImportSummary(BaseModel):
    total_rows: int
    imported: int
    rejected: int


class CsvImportResult(BaseModel):
    message: str
    summary: CsvImportSummary
    errors: list[str] = Field(default_factory=list)
