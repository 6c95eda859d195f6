import string

import pytest

from conftest import make_issue

from a11y_engine.features.audit.schemas.issue import IssueSeverity
from a11y_engine.features.audit.services.grouping import GroupingEngine
from a11y_engine.features.remediation.schemas.plan import ActionCategory
from a11y_engine.features.remediation.services.scheduler import (
    RemediationScheduler,
    items_per_quarter,
    target_rate,
)


def letter_name(i: int) -> str:
    """Distinct names after letters-only normalization."""
    return "Defect " + string.ascii_lowercase[i // 26] + string.ascii_lowercase[i % 26]


def regular_groups(count: int, severity=IssueSeverity.major):
    return GroupingEngine.group_issues([make_issue(letter_name(i), severity=severity) for i in range(count)])


class TestCapacity:

    @pytest.mark.parametrize("total,quarters,expected", [
        (40, 12, 4),
        (3, 12, 2),
        (0, 12, 2),
        (200, 8, 8),
        (25, 8, 4),
    ])
    def test_items_per_quarter(self, total, quarters, expected):
        assert items_per_quarter(total, quarters) == expected

    def test_target_rate(self):
        assert target_rate(40.0, 1) == 90.0
        assert target_rate(40.0, 2) == 100.0
        assert target_rate(None, 1) == 50.0


class TestBuildPlan:

    def test_forty_regular_items_over_two_years(self):
        groups = regular_groups(40)
        plan = RemediationScheduler.build_plan(groups, duration_years=2, now=(2025, 1))

        assert plan.total_quarters == 12
        assert plan.items_per_quarter == 4
        assert len(plan.items) == 40
        assert plan.unscheduled == []
        assert max(item.year for item in plan.items) <= 2027

        for index, item in enumerate(plan.items):
            slot = index // 4
            assert item.title == letter_name(index)
            assert (item.year, item.quarter) == (2025 + slot // 4, slot % 4 + 1)
            assert item.priority_rank == index + 1
            assert not item.is_quick_win

        assert (plan.items[0].year, plan.items[0].quarter) == (2025, 1)
        assert (plan.items[-1].year, plan.items[-1].quarter) == (2027, 2)

    def test_annual_plans_cover_every_year(self):
        plan = RemediationScheduler.build_plan(regular_groups(40), duration_years=2, now=(2025, 1))

        assert [annual.year for annual in plan.annual_plans] == [2025, 2026, 2027]
        for annual in plan.annual_plans:
            assert [q.quarter for q in annual.quarters] == [1, 2, 3, 4]
            assert all(len(q.items) <= plan.items_per_quarter for q in annual.quarters)
            assert annual.total_effort_hours == sum(q.effort_hours for q in annual.quarters)
        assert [annual.total_items for annual in plan.annual_plans] == [16, 16, 8]
        assert plan.annual_plans[0].severity_counts["major"] == 16
        assert plan.total_effort_hours == sum(a.total_effort_hours for a in plan.annual_plans)

    def test_overflow_is_flagged_not_dropped(self):
        plan = RemediationScheduler.build_plan(regular_groups(40), duration_years=1, now=(2025, 3))

        assert plan.items_per_quarter == 5
        assert len(plan.items) == 30
        assert len(plan.unscheduled) == 10
        assert all(item.year <= 2026 for item in plan.items)

        first_overflow = plan.unscheduled[0]
        assert (first_overflow.item.year, first_overflow.item.quarter) == (2027, 1)
        assert first_overflow.item.priority_rank == 31
        assert "2026" in first_overflow.reason

    def test_quick_wins_come_first(self):
        groups = GroupingEngine.group_issues(
            [make_issue("Keyboard trap", selector=f"div.menu{i}") for i in range(12)]
            + [make_issue("image-alt", selector="img.logo")]
            + [make_issue("Minor glitch", severity=IssueSeverity.minor)]
        )
        plan = RemediationScheduler.build_plan(groups, duration_years=1, now=(2025, 1))

        titles = [item.title for item in plan.items]
        assert titles == ["image-alt", "Keyboard trap", "Minor glitch"]
        assert plan.items[0].is_quick_win
        assert plan.items[0].priority_score < plan.items[1].priority_score
        assert len(plan.quick_wins) == 1
        assert plan.annual_plans[0].quick_win_count == 1

    def test_regular_items_sorted_by_score(self):
        groups = GroupingEngine.group_issues([
            make_issue("Small thing", severity=IssueSeverity.minor),
            make_issue("Medium thing", severity=IssueSeverity.major),
        ])
        plan = RemediationScheduler.build_plan(groups, duration_years=1, now=(2025, 1))
        assert [item.title for item in plan.items] == ["Medium thing", "Small thing"]

    def test_item_fields(self):
        groups = GroupingEngine.group_issues([
            make_issue("Missing alt", scope="https://example.com/", primary_criterion="1.1",
                       secondary_criterion="1.1.1", description="Image has no alt"),
            make_issue("Missing alt", scope="https://example.com/about"),
        ])
        groups[0].recommendation = 'Add alt="" to decorative images and describe the others.'
        item = RemediationScheduler.build_plan(groups, duration_years=1, now=(2025, 2)).items[0]

        assert (item.year, item.quarter) == (2025, 2)
        assert item.severity == "critical"
        assert item.category == ActionCategory.content
        assert item.criteria == ["1.1", "1.1.1"]
        assert item.affected_scope_count == 2
        assert item.occurrence_count == 2
        assert item.impact_score == 100
        assert 1 <= item.estimated_effort_hours <= 40
        assert item.technical_details == groups[0].recommendation
        assert "1.1" in item.acceptance_criteria
        assert item.description == "Image has no alt"

    def test_year_rolls_after_fourth_quarter(self):
        plan = RemediationScheduler.build_plan(regular_groups(6), duration_years=1, now=(2025, 4))
        slots = [(item.year, item.quarter) for item in plan.items]
        assert slots == [(2025, 4), (2025, 4), (2026, 1), (2026, 1), (2026, 2), (2026, 2)]

    def test_empty_input_gives_empty_plan(self):
        plan = RemediationScheduler.build_plan([], duration_years=2, now=(2025, 1), current_rate=80.0)

        assert plan.items == []
        assert plan.unscheduled == []
        assert len(plan.annual_plans) == 3
        assert all(annual.total_items == 0 for annual in plan.annual_plans)
        assert plan.target_rate == 100.0

    def test_deterministic(self):
        first = RemediationScheduler.build_plan(regular_groups(17), duration_years=3, now=(2026, 2))
        second = RemediationScheduler.build_plan(regular_groups(17), duration_years=3, now=(2026, 2))
        assert first.model_dump() == second.model_dump()

    @pytest.mark.parametrize("duration", [0, 6, -1])
    def test_invalid_duration(self, duration):
        with pytest.raises(ValueError):
            RemediationScheduler.build_plan([], duration_years=duration, now=(2025, 1))

    def test_invalid_quarter(self):
        with pytest.raises(ValueError):
            RemediationScheduler.build_plan([], duration_years=1, now=(2025, 5))
