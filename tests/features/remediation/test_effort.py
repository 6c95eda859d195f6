import itertools

import pytest

from a11y_engine.features.audit.schemas.issue import Complexity, IssueSeverity
from a11y_engine.features.remediation.services.effort import (
    estimate_effort,
    estimate_impact,
    is_quick_win,
    occurrence_surcharge,
    scope_surcharge,
)


class TestEffort:

    @pytest.mark.parametrize("severity,complexity,occurrences,scopes,hours", [
        ("critical", "low", 1, 1, 10),
        ("major", "medium", 3, 2, 8),
        ("minor", "high", 12, 0, 4),
        ("critical", "high", 8, 20, 30),
        ("critical", "high", 11, 100, 40),
    ])
    def test_estimate(self, severity, complexity, occurrences, scopes, hours):
        assert estimate_effort(severity, complexity, occurrences, scopes) == hours

    def test_rounds_half_up(self):
        # 2 + 1 (medium) + 1.5 (5 scopes) = 4.5
        assert estimate_effort("minor", "medium", 0, 5) == 5

    def test_scope_surcharge_has_diminishing_returns(self):
        assert scope_surcharge(10, 5) == pytest.approx(7.5)
        assert scope_surcharge(10, 6) == pytest.approx(8.0)
        assert scope_surcharge(10, 0) == 0

    def test_occurrence_surcharge_bands(self):
        assert occurrence_surcharge(10, 3) == pytest.approx(3.0)
        assert occurrence_surcharge(10, 5) == pytest.approx(5.0)
        assert occurrence_surcharge(10, 6) == pytest.approx(3.0)
        assert occurrence_surcharge(10, 10) == pytest.approx(3.0)
        assert occurrence_surcharge(10, 11) == pytest.approx(2.0)

    def test_effort_always_within_bounds(self):
        severities = list(IssueSeverity) + ["unknown"]
        complexities = list(Complexity)
        counts = [0, 1, 5, 6, 10, 11, 1000]
        for severity, complexity, occurrences, scopes in itertools.product(severities, complexities, counts, counts):
            assert 1 <= estimate_effort(severity, complexity, occurrences, scopes) <= 40


class TestImpact:

    @pytest.mark.parametrize("severity,scopes,impact", [
        ("critical", 3, 100),
        ("major", 3, 76),
        ("major", 50, 90),
        ("minor", 0, 40),
        ("minor", 20, 60),
    ])
    def test_estimate_impact(self, severity, scopes, impact):
        assert estimate_impact(severity, scopes) == impact


class TestQuickWin:

    def test_quick_win_rules(self):
        assert is_quick_win(IssueSeverity.critical, Complexity.low, 5)
        assert not is_quick_win(IssueSeverity.critical, Complexity.low, 6)
        assert not is_quick_win(IssueSeverity.critical, Complexity.medium, 1)
        assert not is_quick_win(IssueSeverity.major, Complexity.low, 1)
