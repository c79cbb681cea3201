"""Tests for verification progress calculation."""

import pytest

from simplehire.services.progress import (
    calculate_progress,
    id_visa_milestones,
    purchased_tracks,
    reference_milestones,
    round_half_up,
    skill_milestones,
)


ALL_DONE = {"documentsUploaded": True, "voiceInterview": True, "mcqTest": True, "codingChallenge": True}


class TestTracks:

    def test_combo_expands_to_every_track(self):
        assert purchased_tracks(["combo"]) == ["skill", "id-visa", "reference"]

    def test_tracks_keep_catalog_order(self):
        assert purchased_tracks(["reference", "skill"]) == ["skill", "reference"]

    def test_no_products(self):
        assert purchased_tracks([]) == []
        assert purchased_tracks(None) == []


class TestMilestones:

    def test_documents_uploaded_is_not_scored(self):
        assert skill_milestones({"documentsUploaded": True}) == [False, False, False, False]

    def test_certificate_milestone_needs_all_steps(self):
        assert skill_milestones({"voiceInterview": True, "mcqTest": True}) == [True, True, False, False]
        assert skill_milestones(ALL_DONE) == [True, True, True, True]

    @pytest.mark.parametrize("status,reached", [
        ("not-started", 0),
        ("in-progress", 1),
        ("pending", 3),
        ("verified", 4),
        ("failed", 0),
        (None, 0),
    ])
    def test_id_visa_milestones(self, status, reached):
        assert sum(id_visa_milestones(status)) == reached

    def test_reference_milestones(self):
        assert reference_milestones([]) == [False, False, False, False]
        assert reference_milestones(["draft"]) == [True, False, False, False]
        assert reference_milestones(["draft", "email-sent"]) == [True, True, False, False]
        assert reference_milestones(["response-received", "draft"]) == [True, True, True, False]
        assert reference_milestones(["verified", "verified"]) == [True, True, True, True]


class TestOverallProgress:

    def test_nothing_purchased(self):
        report = calculate_progress([], interview_progress=ALL_DONE)
        assert report.to_dict() == {
            "hasProducts": False,
            "overallPercentage": 0,
            "completedCount": 0,
            "totalCount": 0,
            "tracks": {},
        }

    def test_single_track_in_quarters(self):
        report = calculate_progress(["skill"], interview_progress={"voiceInterview": True})
        assert report.overall_percentage == 25
        assert report.tracks["skill"].percentage == 25

    def test_unpurchased_tracks_do_not_count(self):
        report = calculate_progress(["skill"], interview_progress=ALL_DONE, id_verification_status="not-started")
        assert report.overall_percentage == 100
        assert list(report.tracks) == ["skill"]

    def test_combo_rounds_half_up(self):
        # 1 of 12 milestones = 8.33%
        report = calculate_progress(["combo"], interview_progress={"voiceInterview": True})
        assert report.completed_count == 1
        assert report.overall_percentage == 8

    def test_two_tracks(self):
        report = calculate_progress(
            ["skill", "id-visa"],
            interview_progress={"voiceInterview": True, "mcqTest": True},
            id_verification_status="pending",
        )
        # (2 + 3) of 8 = 62.5%
        assert report.overall_percentage == 63
        assert report.tracks["id-visa"].to_dict()["completedMilestones"] == 3

    def test_two_tracks_with_id_in_progress(self):
        report = calculate_progress(
            ["skill", "id-visa"],
            interview_progress={"voiceInterview": True, "mcqTest": True},
            id_verification_status="in-progress",
        )
        # (2 + 1) of 8 = 37.5%
        assert report.completed_count == 3
        assert report.tracks["skill"].percentage == 50
        assert report.tracks["id-visa"].percentage == 25
        assert report.overall_percentage == 38

    def test_skill_track_as_steps_complete(self):
        steps = {"voiceInterview": False, "mcqTest": False, "codingChallenge": False}
        assert calculate_progress(["skill"], interview_progress=steps).overall_percentage == 0

        steps["voiceInterview"] = True
        assert calculate_progress(["skill"], interview_progress=steps).overall_percentage == 25

        steps.update(mcqTest=True, codingChallenge=True)
        assert calculate_progress(["skill"], interview_progress=steps).overall_percentage == 100

    def test_everything_complete(self):
        report = calculate_progress(
            ["combo"],
            interview_progress=ALL_DONE,
            id_verification_status="verified",
            reference_statuses=["verified"],
        )
        assert report.overall_percentage == 100
        assert all(track.is_complete for track in report.tracks.values())


@pytest.mark.parametrize("numerator,denominator,expected", [
    (100, 12, 8),
    (500, 8, 63),
    (250, 4, 63),
    (0, 4, 0),
    (400, 4, 100),
])
def test_round_half_up(numerator, denominator, expected):
    assert round_half_up(numerator, denominator) == expected
