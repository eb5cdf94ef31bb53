"""Tests for the metadata validator."""

from __future__ import annotations

import base64

import pytest

from vidcat.exceptions import ValidationError
from vidcat.models.video import ExternalSource, InlinePendingSource, Platform, StoredSource, VideoSubmission
from vidcat.services.validator import MEDIA_SOURCE_FIELD, MetadataValidator, normalize_tags


@pytest.fixture()
def validator(console) -> MetadataValidator:
    return MetadataValidator(max_upload_bytes=1024, console=console)


def test_scenario_a_url_submission_is_accepted(validator, url_submission) -> None:
    result = validator.validate(url_submission)

    assert result.is_valid
    assert result.draft.platform is Platform.YOUTUBE
    assert result.draft.source == ExternalSource(url="https://youtube.com/watch?v=abc")
    assert result.draft.tags == ["ai"]


def test_scenario_b_missing_source_is_a_single_violation(validator, url_submission) -> None:
    del url_submission["url"]

    result = validator.validate(url_submission)

    assert not result.is_valid
    assert [violation.field for violation in result.violations] == [MEDIA_SOURCE_FIELD]


def test_scenario_c_gif_thumbnail_is_rejected(validator, url_submission) -> None:
    url_submission["thumbnail"] = "http://x/a.gif"

    result = validator.validate(url_submission)

    assert [violation.field for violation in result.violations] == ["thumbnail"]


def test_all_violations_are_collected_together(validator) -> None:
    result = validator.validate(
        {"title": " ", "description": "", "transcript": "", "thumbnail": "nope", "duration": -5}
    )

    assert [violation.field for violation in result.violations] == [
        "title",
        "description",
        "transcript",
        "thumbnail",
        MEDIA_SOURCE_FIELD,
        "duration",
    ]


def test_require_valid_raises_with_every_violation(validator) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validator.require_valid({"title": "", "thumbnail": "x.png"})

    assert "title" in excinfo.value.fields
    assert MEDIA_SOURCE_FIELD in excinfo.value.fields


def test_unrecognised_url_is_rejected(validator, url_submission) -> None:
    url_submission["url"] = "https://example.com/page.html"
    url_submission["platform"] = ""

    result = validator.validate(url_submission)

    assert [violation.field for violation in result.violations] == ["url"]


def test_both_sources_prefers_url(validator, url_submission, upload_submission) -> None:
    url_submission["upload"] = upload_submission["upload"]

    first = validator.validate(url_submission)
    second = validator.validate(url_submission)

    assert first.is_valid
    assert isinstance(first.draft.source, ExternalSource)
    assert first.draft == second.draft


def test_upload_submission_yields_inline_source(validator, upload_submission) -> None:
    result = validator.validate(upload_submission)

    assert result.is_valid
    assert result.draft.platform is Platform.UPLOAD
    assert isinstance(result.draft.source, InlinePendingSource)
    assert result.draft.source.filename == "demo.mp4"


def test_upload_platform_defaults_when_blank(validator, upload_submission) -> None:
    upload_submission["platform"] = ""

    assert validator.validate(upload_submission).draft.platform is Platform.UPLOAD


def test_upload_with_external_platform_is_rejected(validator, upload_submission) -> None:
    upload_submission["platform"] = "vimeo"

    assert [violation.field for violation in validator.validate(upload_submission).violations] == ["platform"]


def test_url_platform_must_match_link(validator, url_submission) -> None:
    url_submission["platform"] = "vimeo"

    assert [violation.field for violation in validator.validate(url_submission).violations] == ["platform"]


def test_platform_inferred_from_url_when_blank(validator, url_submission) -> None:
    url_submission["platform"] = ""
    url_submission["url"] = "https://vimeo.com/76979871"

    assert validator.validate(url_submission).draft.platform is Platform.VIMEO


def test_invalid_base64_upload(validator, upload_submission) -> None:
    upload_submission["upload"]["data"] = "not base64!!"

    assert [violation.field for violation in validator.validate(upload_submission).violations] == ["upload"]


def test_oversized_upload(validator, upload_submission) -> None:
    upload_submission["upload"]["data"] = base64.b64encode(b"z" * 2048).decode("ascii")

    result = validator.validate(upload_submission)

    assert [violation.field for violation in result.violations] == ["upload"]
    assert "1024" in result.violations[0].reason


def test_data_uri_prefix_is_stripped(validator, upload_submission) -> None:
    raw = upload_submission["upload"]["data"]
    upload_submission["upload"]["data"] = f"data:video/mp4;base64,{raw}"

    assert validator.validate(upload_submission).draft.source.payload == raw


def test_type_errors_become_violations(validator, url_submission) -> None:
    url_submission["duration"] = "two minutes"

    result = validator.validate(url_submission)

    assert [violation.field for violation in result.violations] == ["duration"]


@pytest.mark.parametrize("duration", ["inf", "-inf", "nan", float("inf"), float("nan")])
def test_non_finite_duration_is_a_violation(validator, url_submission, duration) -> None:
    url_submission["duration"] = duration

    result = validator.validate(url_submission)

    assert [violation.field for violation in result.violations] == ["duration"]


def test_current_source_is_kept_when_no_new_source(validator, upload_submission) -> None:
    del upload_submission["upload"]
    kept = StoredSource(path="uploads/1-abc-demo.mp4")

    result = validator.validate(upload_submission, current_source=kept)

    assert result.draft.source == kept


def test_fields_are_normalised(validator, url_submission) -> None:
    url_submission.update(
        title="  Title  ",
        transcript="line one\r\nline two",
        tags=[" AI ", "ai", "", "ML"],
        duration=90.7,
    )

    draft = validator.validate(url_submission).draft

    assert draft.title == "Title"
    assert draft.transcript == "line one\nline two"
    assert draft.tags == ["AI", "ML"]
    assert draft.duration == 90


def test_accepts_submission_model(validator) -> None:
    submission = VideoSubmission(
        title="T",
        description="D",
        transcript="X",
        thumbnail="https://img/a.WEBP?size=large",
        url="https://cdn.example.com/video.mp4",
    )

    draft = validator.validate(submission).draft

    assert draft.platform is Platform.MP4


def test_normalize_tags_preserves_order() -> None:
    assert normalize_tags(["b", "a", "B", "c"]) == ["b", "a", "c"]
