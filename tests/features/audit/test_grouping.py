import itertools
import random

from conftest import make_issue

from a11y_engine.features.audit.schemas.issue import EnrichmentStatus, IssueSeverity, IssueSource
from a11y_engine.features.audit.services.grouping import GroupingEngine


def scenario_a_issues():
    missing_alt = [
        make_issue("Missing alt", selector=f"img:nth-of-type({i})") for i in range(1, 13)
    ]
    low_contrast = make_issue("Low contrast", source=IssueSource.static_analyzer, severity=IssueSeverity.major)
    return missing_alt + [low_contrast]


def group_signature(groups):
    return sorted((g.key, g.occurrence_count, g.severity.value, tuple(sorted(g.affected_scopes))) for g in groups)


class TestGroupIssues:

    def test_missing_alt_and_low_contrast(self):
        groups = GroupingEngine.group_issues(scenario_a_issues())

        assert len(groups) == 2
        counts = {g.error_type: g.occurrence_count for g in groups}
        assert counts == {"Missing alt": 12, "Low contrast": 1}

    def test_same_type_from_different_sources_stays_apart(self):
        issues = [
            make_issue("Missing alt"),
            make_issue("Missing alt", source=IssueSource.rule_linter),
        ]
        assert len(GroupingEngine.group_issues(issues)) == 2

    def test_counters_in_labels_collapse(self):
        issues = [make_issue("Missing alt #1"), make_issue("Missing alt #2"), make_issue("missing ALT")]
        groups = GroupingEngine.group_issues(issues)
        assert len(groups) == 1
        assert groups[0].error_type == "Missing alt #1"

    def test_occurrences_keep_input_order(self):
        issues = scenario_a_issues()
        groups = GroupingEngine.group_issues(issues)
        alt_group = next(g for g in groups if g.error_type == "Missing alt")
        assert [o.selector for o in alt_group.occurrences] == [f"img:nth-of-type({i})" for i in range(1, 13)]
        assert alt_group.first_occurrence.selector == "img:nth-of-type(1)"

    def test_permutations_give_same_groups(self):
        issues = scenario_a_issues() + [
            make_issue("Low contrast", source=IssueSource.static_analyzer, severity=IssueSeverity.critical,
                       scope="https://example.com/about"),
        ]
        expected = group_signature(GroupingEngine.group_issues(issues))

        rng = random.Random(7)
        for _ in range(20):
            shuffled = list(issues)
            rng.shuffle(shuffled)
            assert group_signature(GroupingEngine.group_issues(shuffled)) == expected

    def test_small_permutations_exhaustive(self):
        issues = [
            make_issue("Missing alt", severity=IssueSeverity.minor),
            make_issue("Missing alt", severity=IssueSeverity.critical, scope="https://example.com/a"),
            make_issue("Empty link"),
            make_issue("Empty link", source=IssueSource.rule_linter),
        ]
        expected = group_signature(GroupingEngine.group_issues(issues))
        for permutation in itertools.permutations(issues):
            assert group_signature(GroupingEngine.group_issues(permutation)) == expected

    def test_group_takes_highest_severity(self):
        issues = [make_issue("Missing alt", severity=IssueSeverity.minor),
                  make_issue("Missing alt", severity=IssueSeverity.major)]
        assert GroupingEngine.group_issues(issues)[0].severity == IssueSeverity.major

    def test_empty_input(self):
        assert GroupingEngine.group_issues([]) == []

    def test_checker_recommendation_marks_group_enriched(self):
        issues = [make_issue("image-alt-generic", source=IssueSource.ai_visual, recommendation="Describe the logo")]
        group = GroupingEngine.group_issues(issues)[0]
        assert group.recommendation == "Describe the logo"
        assert group.enrichment_status == EnrichmentStatus.enriched


class TestMergeCampaignGroups:

    def test_merges_across_scans(self):
        home = GroupingEngine.group_issues([
            make_issue("Missing alt", scope="https://example.com/", primary_criterion="1.1.1"),
            make_issue("Missing alt", scope="https://example.com/"),
        ])
        about = GroupingEngine.group_issues([
            make_issue("Missing alt", scope="https://example.com/about", severity=IssueSeverity.major),
            make_issue("Low contrast", source=IssueSource.static_analyzer, scope="https://example.com/about"),
        ])
        about[0].recommendation = "Add alt text"

        merged = GroupingEngine.merge_campaign_groups([home, about])

        assert len(merged) == 2
        alt = next(g for g in merged if g.error_type == "Missing alt")
        assert alt.occurrence_count == 3
        assert alt.affected_scopes == ["https://example.com/", "https://example.com/about"]
        assert alt.severity == IssueSeverity.critical
        assert alt.primary_criterion == "1.1"
        assert alt.recommendation == "Add alt text"

    def test_merge_does_not_mutate_scan_groups(self):
        home = GroupingEngine.group_issues([make_issue("Missing alt")])
        about = GroupingEngine.group_issues([make_issue("Missing alt", scope="https://example.com/about")])

        GroupingEngine.merge_campaign_groups([home, about])

        assert home[0].occurrence_count == 1
        assert home[0].affected_scopes == ["https://example.com/"]


class TestGroupLabels:

    def test_most_frequent_label_and_criterion_win(self):
        issues = [
            make_issue("missing ALT", primary_criterion="1.2"),
            make_issue("Missing alt", primary_criterion="1.1"),
            make_issue("Missing alt", primary_criterion="1.1"),
        ]
        group = GroupingEngine.group_issues(issues)[0]
        assert group.error_type == "Missing alt"
        assert group.primary_criterion == "1.1"

    def test_labels_do_not_depend_on_input_order(self):
        issues = [
            make_issue("Missing alt", primary_criterion="1.2", secondary_criterion="1.1.1"),
            make_issue("missing-alt", primary_criterion="1.1"),
            make_issue("Missing alt", secondary_criterion="1.4.3"),
            make_issue("missing-alt"),
        ]
        chosen = set()
        for permutation in itertools.permutations(issues):
            group = GroupingEngine.group_issues(permutation)[0]
            chosen.add((group.error_type, group.primary_criterion, group.secondary_criterion))

        # Ties are broken by sort order.
        assert chosen == {("Missing alt", "1.1", "1.1.1")}
