"""Result types for the cohort metrics pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

CONVERTED = "converted"
NOT_CONVERTED = "not_converted"


@dataclass
class ClientDetail:
    """Audit record for one client inside one cohort list.

    Attributes:
        email: Client email, the join key across the three exports.
        name: "First Last" from the intake export.
        date: Representative date for the list the record sits in (first
            visit for new clients, first return visit for retained clients,
            first purchase for converted clients), ISO formatted.
        value: Purchase value attributed to the client, if any.
        visit_count: Qualifying return visits, for retained clients.
        membership_type: Membership used on the first visit, or the purchased
            item for converted clients.
        conversion_status: ``"converted"`` or ``"not_converted"``.
        conversion_reason: Why the client did or did not convert.
        first_purchase_date: Date of the first qualifying purchase.
        first_purchase_item: Item of the first qualifying purchase.
        purchase_value: Value of the first qualifying purchase.
        first_visit: First-visit date, ISO formatted.
        first_visit_post_trial: Date of the first qualifying return visit.
        reason: Narrative reason for the list membership.
    """

    email: str
    name: str
    date: Optional[str] = None
    value: Optional[float] = None
    visit_count: Optional[int] = None
    membership_type: str = ""
    conversion_status: Optional[str] = None
    conversion_reason: Optional[str] = None
    first_purchase_date: Optional[str] = None
    first_purchase_item: Optional[str] = None
    purchase_value: Optional[float] = None
    first_visit: Optional[str] = None
    first_visit_post_trial: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CohortMetrics:
    """Metrics for one (staff member, location, period) cohort.

    Per-location rollups use the same type with ``staff_member`` set to the
    all-staff sentinel; see ``is_rollup``.

    Rates are percentages in [0, 100]. Attendance counts cover the cohort's
    attendance rows (same staff, location and class-date period), of which
    there are ``bookings``.
    """

    staff_member: str
    location: str
    period: str

    # Acquisition counts
    new_clients: int = 0
    trials: int = 0
    referrals: int = 0
    hosted: int = 0
    influencer_signups: int = 0
    others: int = 0
    retained_clients: int = 0
    converted_clients: int = 0
    trial_converted: int = 0
    referral_converted: int = 0
    influencer_converted: int = 0

    # Rates
    retention_rate: float = 0.0
    conversion_rate: float = 0.0
    no_show_rate: float = 0.0
    late_cancellation_rate: float = 0.0
    first_time_buyer_rate: float = 0.0
    influencer_conversion_rate: float = 0.0
    referral_conversion_rate: float = 0.0
    trial_to_membership_conversion: float = 0.0

    # Revenue
    total_revenue: float = 0.0
    average_revenue_per_client: float = 0.0

    # Attendance
    bookings: int = 0
    total_visits: int = 0
    cancellations: int = 0
    late_cancellations: int = 0
    no_shows: int = 0
    total_classes: int = 0
    unique_clients: int = 0

    # Audit lists
    new_client_details: List[ClientDetail] = field(default_factory=list)
    retained_client_details: List[ClientDetail] = field(default_factory=list)
    converted_client_details: List[ClientDetail] = field(default_factory=list)
    excluded_client_details: List[ClientDetail] = field(default_factory=list)

    # Chart series: week start (ISO date) -> revenue, channel -> client count
    revenue_by_week: Dict[str, float] = field(default_factory=dict)
    clients_by_source: Dict[str, int] = field(default_factory=dict)

    is_rollup: bool = False

    @property
    def key(self) -> tuple:
        return (self.staff_member, self.location, self.period)

    def summary(self) -> Dict[str, Any]:
        """Flat dictionary of counts, rates and revenue (no detail lists)."""
        data = asdict(self)
        for name in (
            "new_client_details",
            "retained_client_details",
            "converted_client_details",
            "excluded_client_details",
            "revenue_by_week",
            "clients_by_source",
        ):
            data.pop(name)
        return data


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress checkpoint reported to the caller.

    Attributes:
        progress: Percentage complete, monotonically increasing.
        current_step: Short description of the stage that is starting.
    """

    progress: int
    current_step: str


ProgressCallback = Callable[[ProgressUpdate], None]


@dataclass
class SalesSummary:
    """Monthly sales analytics over the whole sales export.

    Monthly tables hold one row per (period, key) with ``revenue``,
    ``transactions``, ``average_transaction_value``, ``previous_revenue`` and
    ``growth`` (percent change against the same key in the preceding month
    present in the export; NaN when the key is absent from that month).
    Months run oldest first.

    Attributes:
        monthly_trends: Totals per month. ``growth`` and ``previous_revenue``
            are 0.0 for the first month.
        by_product: Monthly totals per cleaned product name, with its category.
        by_category: Monthly totals per product category.
        by_location: Monthly totals per sale location.
        top_products: Products across all months, highest revenue first,
            with ``average_growth`` over the months that have a growth figure.
        top_categories: Same for categories.
        top_locations: Same for locations.
        total_revenue: Revenue of every summarized sale.
        total_transactions: Number of summarized sales.
        average_transaction_value: total_revenue / total_transactions, or 0.0.
    """

    monthly_trends: pd.DataFrame = field(default_factory=pd.DataFrame)
    by_product: pd.DataFrame = field(default_factory=pd.DataFrame)
    by_category: pd.DataFrame = field(default_factory=pd.DataFrame)
    by_location: pd.DataFrame = field(default_factory=pd.DataFrame)
    top_products: pd.DataFrame = field(default_factory=pd.DataFrame)
    top_categories: pd.DataFrame = field(default_factory=pd.DataFrame)
    top_locations: pd.DataFrame = field(default_factory=pd.DataFrame)
    total_revenue: float = 0.0
    total_transactions: int = 0
    average_transaction_value: float = 0.0


@dataclass
class PipelineResult:
    """Result of the cohort metrics pipeline.

    Attributes:
        cohorts: Per-staff cohorts followed by per-location rollups.
        staff_members: Staff names seen in attendance, sorted.
        locations: First-visit locations, in first-seen order.
        periods: Month periods, most recent first.
        included_records: Intake rows that entered a cohort, with a reason.
        excluded_records: Intake rows removed as internal visits, with a reason.
        new_client_records: Every new-client detail across cohorts.
        converted_client_records: Every converted-client detail across cohorts.
        retained_client_records: Every retained-client detail across cohorts.
        unlinked_records: Intake rows with no matching attendance row, which
            therefore belong to no cohort.
        sales_summary: Monthly sales analytics by product, category and location.
    """

    cohorts: List[CohortMetrics]
    staff_members: List[str]
    locations: List[str]
    periods: List[str]
    included_records: pd.DataFrame
    excluded_records: pd.DataFrame
    new_client_records: pd.DataFrame
    converted_client_records: pd.DataFrame
    retained_client_records: pd.DataFrame
    unlinked_records: pd.DataFrame = field(default_factory=pd.DataFrame)
    sales_summary: SalesSummary = field(default_factory=SalesSummary)

    @property
    def staff_cohorts(self) -> List[CohortMetrics]:
        return [c for c in self.cohorts if not c.is_rollup]

    @property
    def rollups(self) -> List[CohortMetrics]:
        return [c for c in self.cohorts if c.is_rollup]

    def get(self, staff_member: str, location: str, period: str) -> Optional[CohortMetrics]:
        """Look up one cohort (or rollup) by its key."""
        for cohort in self.cohorts:
            if cohort.key == (staff_member, location, period):
                return cohort
        return None

    def to_frame(self) -> pd.DataFrame:
        """Cohort table with one row per cohort or rollup, without detail lists."""
        return pd.DataFrame([c.summary() for c in self.cohorts])
