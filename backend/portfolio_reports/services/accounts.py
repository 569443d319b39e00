# backend/portfolio_reports/services/accounts.py
"""
Account configuration: which tags feed which metric, and per-account overrides.

The metrics engine is account-agnostic. Everything that differs between
accounts lives here as data:

- Tag selection: every account reads three logical series from the master
  sheet (deposits, NAV, cash flows; exposure shares the deposit tag).
  Defaults depend on account type and broker. A tag spec string
  "depositTag|navTag[|cashflowTag]" overrides them per request.
- Overrides: historical figures for closed or migrated schemes, merged
  over the computed metrics.
- Strategy display names.

Account Profile File Format (accounts.json):
    {
        "QAC00041": {
            "account_type": "managed_account",
            "broker": "zerodha",
            "strategy": "QAW+",
            "nav_tag": "Zerodha Total Portfolio",
            "overrides": {
                "cumulative_return": "23.45",
                "monthly_percent": {"2023-03": "1.20"},
                "quarterly_percent": {"2023-Q1": "3.10"}
            }
        }
    }

Usage:
    from portfolio_reports.services.accounts import AccountRegistry

    registry = AccountRegistry.from_file(settings.accounts_config_path)
    profile = registry.profile_for(account)
    tags = profile.tags(tag_spec="Zerodha Total Portfolio|Total Portfolio Value")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from portfolio_reports.services.exceptions import ConfigurationError

if TYPE_CHECKING:
    from portfolio_reports.services.metrics.types import MetricsOverride

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

TAG_SPEC_SEPARATOR = "|"

ZERODHA_TOTAL_PORTFOLIO = "Zerodha Total Portfolio"
TOTAL_PORTFOLIO_VALUE = "Total Portfolio Value"
TOTAL_PORTFOLIO_EXPOSURE = "Total Portfolio Exposure"
PMS_TOTAL_PORTFOLIO = "PMS Total Portfolio"

# Zerodha-style managed accounts pick the NAV tag by strategy
MANAGED_NAV_TAG_BY_STRATEGY: dict[str, str] = {
    "QAW+": ZERODHA_TOTAL_PORTFOLIO,
    "QAW++": ZERODHA_TOTAL_PORTFOLIO,
    "QTF+": ZERODHA_TOTAL_PORTFOLIO,
    "QTF++": ZERODHA_TOTAL_PORTFOLIO,
    "QYE+": TOTAL_PORTFOLIO_VALUE,
    "QYE++": TOTAL_PORTFOLIO_VALUE,
}

STRATEGY_NAMES: dict[str, str] = {
    "QAW+": "Qode All Weather+",
    "QAW++": "Qode All Weather++",
    "QTF+": "Qode Tactical Fund+",
    "QTF++": "Qode Tactical Fund++",
    "QYE+": "Qode Yield Enhancer+",
    "QYE++": "Qode Yield Enhancer++",
}

DEFAULT_STRATEGY_NAME = "Portfolio Strategy"
STRATEGY_NAME_SEPARATOR = " + "


class AccountType(str, Enum):
    """Kinds of accounts reported on."""
    MANAGED_ACCOUNT = "managed_account"
    PMS = "pms"
    PROP = "prop"


class TagCategory(str, Enum):
    """Role a master sheet tag usually plays, inferred from its name."""
    DEPOSIT = "deposit"
    NAV = "nav"
    EXPOSURE = "exposure"
    OTHER = "other"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class TagSet:
    """
    Master sheet tags feeding one account's metrics.

    Attributes:
        deposit_tag: Capital movements summed into amount deposited
        nav_tag: NAV / P&L series driving returns, drawdowns and buckets
        exposure_tag: Latest portfolio value is the current exposure
        cashflow_tag: Capital movements listed in the cash-flow table
    """
    deposit_tag: str
    nav_tag: str
    exposure_tag: str
    cashflow_tag: str


@dataclass(frozen=True)
class AccountInfo:
    """Account row as known to the data source."""
    qcode: str
    account_type: str
    broker: str | None = None
    strategy: str | None = None


# =============================================================================
# TAG RESOLUTION
# =============================================================================

def parse_tag_spec(spec: str) -> TagSet:
    """
    Parse a tag spec "depositTag|navTag[|cashflowTag]".

    Exposure always shares the deposit tag. A missing cash-flow tag falls
    back to the deposit tag.

    Raises:
        ConfigurationError: If the deposit or NAV segment is missing or empty

    Example:
        >>> parse_tag_spec("Zerodha Total Portfolio|Total Portfolio Value")
        TagSet(deposit_tag='Zerodha Total Portfolio', nav_tag='Total Portfolio Value', ...)
    """
    segments = [s.strip() for s in spec.split(TAG_SPEC_SEPARATOR)]

    if len(segments) < 2 or not segments[0] or not segments[1]:
        raise ConfigurationError(
            f"Invalid tag spec '{spec}': expected 'depositTag|navTag[|cashflowTag]'",
            value=spec,
            field="tag",
        )

    deposit_tag, nav_tag = segments[0], segments[1]
    cashflow_tag = segments[2] if len(segments) > 2 and segments[2] else deposit_tag

    return TagSet(
        deposit_tag=deposit_tag,
        nav_tag=nav_tag,
        exposure_tag=deposit_tag,
        cashflow_tag=cashflow_tag,
    )


def default_tags(account_type: str, broker: str | None, strategy: str | None = None) -> TagSet:
    """
    Default tags for an account type and broker.

    Rules:
        - managed_account, broker radiance: every series on 'Total Portfolio Exposure'
        - managed_account, broker jainam: deposits on 'Zerodha Total Portfolio',
          NAV on 'Total Portfolio Value'
        - managed_account, other brokers: deposits on 'Zerodha Total Portfolio',
          NAV chosen by strategy ('Total Portfolio Exposure' when unmapped)
        - pms: every series on 'PMS Total Portfolio'
        - prop: no defaults

    Raises:
        ConfigurationError: For prop or unknown account types
    """
    broker_key = (broker or "").lower()

    if account_type == AccountType.MANAGED_ACCOUNT.value:
        if broker_key == "radiance":
            return TagSet(*(TOTAL_PORTFOLIO_EXPOSURE,) * 4)
        if broker_key == "jainam":
            nav_tag = TOTAL_PORTFOLIO_VALUE
        else:
            nav_tag = MANAGED_NAV_TAG_BY_STRATEGY.get(strategy or "", TOTAL_PORTFOLIO_EXPOSURE)
        return TagSet(
            deposit_tag=ZERODHA_TOTAL_PORTFOLIO,
            nav_tag=nav_tag,
            exposure_tag=ZERODHA_TOTAL_PORTFOLIO,
            cashflow_tag=ZERODHA_TOTAL_PORTFOLIO,
        )

    if account_type == AccountType.PMS.value:
        return TagSet(*(PMS_TOTAL_PORTFOLIO,) * 4)

    if account_type == AccountType.PROP.value:
        raise ConfigurationError(
            "Prop accounts have no default tags; supply a tag spec "
            "'depositTag|navTag[|cashflowTag]'",
            field="tag",
        )

    raise ConfigurationError(f"Unsupported account type: '{account_type}'", value=account_type)


def categorize_tag(tag: str) -> TagCategory:
    """
    Guess the role of a tag from its name.

    Example:
        >>> categorize_tag("Total Portfolio Exposure")
        <TagCategory.EXPOSURE: 'exposure'>
    """
    name = tag.lower()
    if "exposure" in name:
        return TagCategory.EXPOSURE
    if "value" in name or "nav" in name:
        return TagCategory.NAV
    if "total portfolio" in name or "deposit" in name:
        return TagCategory.DEPOSIT
    return TagCategory.OTHER


def strategy_display_name(strategies: Iterable[str | None]) -> str:
    """
    Display name for one or more strategy codes.

    Known codes map to their full names, unknown values are shown as-is,
    duplicates collapse, and several names are joined with " + ".

    Example:
        >>> strategy_display_name(["QAW+", "QTF+", "QAW+"])
        'Qode All Weather+ + Qode Tactical Fund+'
    """
    names: list[str] = []
    for code in strategies:
        if not code:
            continue
        name = STRATEGY_NAMES.get(code, code)
        if name not in names:
            names.append(name)

    return STRATEGY_NAME_SEPARATOR.join(names) if names else DEFAULT_STRATEGY_NAME


# =============================================================================
# PROFILES
# =============================================================================

class OverrideConfig(BaseModel):
    """
    Override values as written in the profile file.

    Bucket keys are "YYYY-MM" for months and "YYYY-Qn" for quarters.
    """

    cumulative_return: Decimal | None = None
    total_profit: Decimal | None = None
    trailing_returns: dict[str, Decimal | None] = Field(default_factory=dict)
    monthly_percent: dict[str, Decimal | None] = Field(default_factory=dict)
    quarterly_percent: dict[str, Decimal | None] = Field(default_factory=dict)

    def to_override(self) -> MetricsOverride:
        """Convert to the engine's MetricsOverride, parsing bucket keys."""
        # Lazy import to avoid circular dependencies
        from portfolio_reports.services.metrics.types import MetricsOverride

        return MetricsOverride(
            cumulative_return=self.cumulative_return,
            total_profit=self.total_profit,
            trailing_returns=dict(self.trailing_returns),
            monthly_percent={
                _parse_period_key(k, "-"): v for k, v in self.monthly_percent.items()
            },
            quarterly_percent={
                _parse_period_key(k, "-Q"): v for k, v in self.quarterly_percent.items()
            },
        )


def _parse_period_key(key: str, separator: str) -> tuple[int, int]:
    year, _, period = key.upper().partition(separator.upper())
    try:
        return int(year), int(period)
    except ValueError:
        raise ConfigurationError(f"Invalid override period key: '{key}'", value=key) from None


class AccountProfile(BaseModel):
    """
    Declarative configuration for one account.

    Explicit tags take precedence over the type/broker defaults; a tag spec
    passed with the request takes precedence over both.
    """

    model_config = ConfigDict(frozen=True)

    qcode: str
    account_type: AccountType
    broker: str | None = None
    strategy: str | None = None
    deposit_tag: str | None = None
    nav_tag: str | None = None
    exposure_tag: str | None = None
    cashflow_tag: str | None = None
    overrides: OverrideConfig | None = None

    def tags(self, tag_spec: str | None = None) -> TagSet:
        """
        Resolve the tags to read for this account.

        Raises:
            ConfigurationError: For an invalid tag spec, or a prop account
                                with neither a spec nor explicit tags
        """
        if tag_spec:
            return parse_tag_spec(tag_spec)

        if self.deposit_tag and self.nav_tag:
            base = TagSet(self.deposit_tag, self.nav_tag, self.deposit_tag, self.deposit_tag)
        else:
            base = default_tags(self.account_type.value, self.broker, self.strategy)

        return TagSet(
            deposit_tag=self.deposit_tag or base.deposit_tag,
            nav_tag=self.nav_tag or base.nav_tag,
            exposure_tag=self.exposure_tag or base.exposure_tag,
            cashflow_tag=self.cashflow_tag or base.cashflow_tag,
        )

    def metrics_override(self) -> MetricsOverride | None:
        """Engine override for this account, if any."""
        return self.overrides.to_override() if self.overrides else None

    @property
    def strategy_name(self) -> str:
        return strategy_display_name([self.strategy])


class AccountRegistry:
    """
    Lookup of account profiles by qcode.

    Accounts without a stored profile are described from their account row
    and use the default tags for their type.
    """

    def __init__(self, profiles: Iterable[AccountProfile] = ()) -> None:
        self._profiles: dict[str, AccountProfile] = {p.qcode: p for p in profiles}

    @classmethod
    def from_file(cls, path: Path | None) -> AccountRegistry:
        """
        Load profiles from a JSON file keyed by qcode.

        A missing file yields an empty registry (defaults only). Malformed
        entries are logged and skipped.
        """
        if path is None:
            return cls()

        if not path.exists():
            logger.warning(f"Account profiles file not found: {path}. Using default tags only.")
            return cls()

        try:
            with open(path, "r") as f:
                raw_profiles = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in account profiles file: {e}")
            return cls()

        profiles = []
        for qcode, config in raw_profiles.items():
            try:
                profiles.append(AccountProfile(qcode=qcode, **config))
            except PydanticValidationError as e:
                logger.error(f"Skipping invalid account profile '{qcode}': {e}")

        logger.info(f"Loaded {len(profiles)} account profiles from {path}")
        return cls(profiles)

    def get(self, qcode: str) -> AccountProfile | None:
        return self._profiles.get(qcode)

    def profile_for(self, account: AccountInfo) -> AccountProfile:
        """Stored profile for the account, or one built from its row."""
        profile = self._profiles.get(account.qcode)
        if profile is not None:
            return profile

        try:
            account_type = AccountType(account.account_type)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported account type: '{account.account_type}'",
                value=account.account_type,
            ) from None

        return AccountProfile(
            qcode=account.qcode,
            account_type=account_type,
            broker=account.broker,
            strategy=account.strategy,
        )

    def __len__(self) -> int:
        return len(self._profiles)
