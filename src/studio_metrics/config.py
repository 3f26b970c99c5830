"""Rule configuration for the cohort metrics pipeline.

Every keyword list and threshold the pipeline applies lives here, so a run
is fully described by its inputs plus one MetricsConfig instance.

Keyword lists are pipe-delimited alternatives matched case-insensitively as
substrings (see studio_metrics.cleaning.matches_any_keyword).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from studio_metrics.exceptions import ConfigError

# Staff sentinel for intake records with no matching attendance row
UNKNOWN_STAFF = "Unknown"

# Staff sentinel carried by per-location rollups
ALL_STAFF = "All Staff"

# Period sentinel for intake records whose first-visit date did not parse
UNKNOWN_PERIOD = "Unknown"

# Internal / non-paying visit types, removed before cohort building
EXCLUSION_KEYWORDS = "friends|family|staff"

# Acquisition channels, evaluated in this order
TRIAL_KEYWORDS = "Studio Open Barre Class|Newcomers 2 For 1"
REFERRAL_LABEL = "Studio Complimentary Referral Class"
HOSTED_KEYWORDS = "hosted|x|p57|physique|weword|rugby|outdoor|birthday|bridal|shower"
INFLUENCER_KEYWORDS = "sign-up|link|influencer|twain|ooo|lrs|x|p57|physique|complimentary"

# Marker for the two-visit intro offer
TWO_FOR_ONE_MARKER = "2 for 1"

# Sale categories that never count as a conversion
EXCLUDED_SALE_CATEGORIES = ["money-credits", "retail", "product"]

# Minimum sale value (currency units) for a qualifying purchase
MIN_CONVERSION_VALUE = 1000.0

# Channel names, in priority order
CHANNELS = ["Trials", "Referrals", "Hosted", "Influencer", "Others"]

# Product categories for the sales summary, tested in order against the
# cleaned item name; anything else is "Other"
PRODUCT_CATEGORIES = [
    ("Classes", "class|session"),
    ("Packages", "package|bundle"),
    ("Memberships", "membership"),
    ("Retail", "retail|product"),
    ("Events", "workshop|event"),
]
OTHER_CATEGORY = "Other"

# Rows kept in each top-performers table
TOP_PERFORMERS_LIMIT = 10


@dataclass
class MetricsConfig:
    """Rules applied by the pipeline.

    Attributes:
        exclusion_keywords: Alternatives marking internal visits (membership or class).
        trial_keywords: Membership alternatives for the trial channel.
        referral_label: Exact membership label for the referral channel.
        hosted_keywords: First-visit class alternatives for the hosted channel.
        influencer_keywords: Membership alternatives for the influencer channel.
        two_for_one_marker: Class/item marker for the two-visit intro offer.
        excluded_sale_categories: Category substrings that disqualify a sale.
        min_conversion_value: Minimum value of a qualifying sale.
        unknown_staff: Staff label given to unlinked intake records.
        all_staff: Staff label carried by per-location rollups.
        product_categories: (category, alternatives) pairs for the sales summary.
        top_performers_limit: Rows kept in each top-performers table.
    """

    exclusion_keywords: str = EXCLUSION_KEYWORDS
    trial_keywords: str = TRIAL_KEYWORDS
    referral_label: str = REFERRAL_LABEL
    hosted_keywords: str = HOSTED_KEYWORDS
    influencer_keywords: str = INFLUENCER_KEYWORDS
    two_for_one_marker: str = TWO_FOR_ONE_MARKER
    excluded_sale_categories: List[str] = field(
        default_factory=lambda: list(EXCLUDED_SALE_CATEGORIES)
    )
    min_conversion_value: float = MIN_CONVERSION_VALUE
    unknown_staff: str = UNKNOWN_STAFF
    all_staff: str = ALL_STAFF
    product_categories: List[Tuple[str, str]] = field(
        default_factory=lambda: list(PRODUCT_CATEGORIES)
    )
    top_performers_limit: int = TOP_PERFORMERS_LIMIT

    def validate(self) -> None:
        """Check the configuration for values the pipeline cannot work with.

        Raises:
            ConfigError: If a keyword list is blank, the minimum sale value is
                negative, the two staff sentinels are blank or equal, or the
                top-performers limit is below one.
        """
        for name in (
            "exclusion_keywords",
            "trial_keywords",
            "hosted_keywords",
            "influencer_keywords",
        ):
            value = getattr(self, name)
            if not value or not any(part.strip() for part in value.split("|")):
                raise ConfigError(f"{name} must contain at least one keyword")

        if not self.referral_label.strip():
            raise ConfigError("referral_label must not be blank")
        if not self.two_for_one_marker.strip():
            raise ConfigError("two_for_one_marker must not be blank")
        if self.min_conversion_value < 0:
            raise ConfigError(
                f"min_conversion_value must be >= 0, got {self.min_conversion_value}"
            )
        if not self.unknown_staff.strip() or not self.all_staff.strip():
            raise ConfigError("staff sentinels must not be blank")
        if self.unknown_staff == self.all_staff:
            raise ConfigError("unknown_staff and all_staff must differ")
        if self.top_performers_limit < 1:
            raise ConfigError(
                f"top_performers_limit must be >= 1, got {self.top_performers_limit}"
            )
