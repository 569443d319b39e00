# backend/portfolio_reports/services/metrics/drawdown.py
"""
Drawdown tracking over an equity curve.

Formula:
    peak_t     = max(peak_{t-1}, value_t)        (peak_0 = value_0)
    drawdown_t = (peak_t - value_t) / peak_t * 100   if peak_t > 0 else 0

Drawdowns are magnitudes (>= 0). The sign convention used for display is a
presentation concern.
"""

import logging
from collections.abc import Sequence

from portfolio_reports.services.constants import HUNDRED, ZERO
from portfolio_reports.services.metrics.types import (
    DrawdownCurvePoint,
    DrawdownSummary,
    EquityCurvePoint,
)

logger = logging.getLogger(__name__)


def compute_drawdown_curve(points: Sequence[EquityCurvePoint]) -> DrawdownSummary:
    """
    Calculate the drawdown curve, maximum drawdown and current drawdown.

    Single chronological pass; the input is expected in ascending date
    order. Points without a value are skipped.

    Args:
        points: Equity curve points (date, value)

    Returns:
        DrawdownSummary. Empty input yields an empty curve and zeros.
    """
    valued = [p for p in points if p.value is not None]
    if not valued:
        return DrawdownSummary()

    peak = valued[0].value
    max_drawdown = ZERO
    curve: list[DrawdownCurvePoint] = []

    for point in valued:
        if point.value > peak:
            peak = point.value

        drawdown = (peak - point.value) / peak * HUNDRED if peak > ZERO else ZERO
        if drawdown > max_drawdown:
            max_drawdown = drawdown

        curve.append(DrawdownCurvePoint(date=point.date, drawdown=drawdown, peak=peak))

    logger.debug(
        f"Drawdown over {len(curve)} points: max={max_drawdown}, "
        f"current={curve[-1].drawdown}"
    )

    return DrawdownSummary(
        curve=tuple(curve),
        max_drawdown=max_drawdown,
        current_drawdown=curve[-1].drawdown,
    )
