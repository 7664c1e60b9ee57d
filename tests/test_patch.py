from types import SimpleNamespace

import pytest

from domain.patch import apply_patch, changed_fields
from domain.schemas import UpdateApplicantRequest, UpdateJobPostRequest


def test_only_fields_present_in_the_request_are_changes():
    req = UpdateApplicantRequest(first_name="Grace", phone_number=None)
    assert changed_fields(req) == {"first_name": "Grace", "phone_number": None}


def test_enum_values_are_unwrapped():
    req = UpdateApplicantRequest(status="Under Review")
    assert changed_fields(req) == {"status": "Under Review"}


def test_required_fields_cannot_be_nulled():
    with pytest.raises(ValueError):
        UpdateJobPostRequest(title=None)


def test_job_post_id_is_not_patchable_through_the_request():
    with pytest.raises(ValueError):
        UpdateApplicantRequest(job_post_id="job_other")


def test_apply_patch_updates_iff_set():
    target = SimpleNamespace(first_name="Ada", last_name="Lovelace", phone_number="123")
    updated = apply_patch(target, {"first_name": "Grace", "last_name": "Lovelace"})
    assert updated == ["first_name"]
    assert target.first_name == "Grace"
    assert target.phone_number == "123"


def test_apply_patch_rejects_immutable_and_unknown_fields():
    target = SimpleNamespace(job_post_id="job_1", email="a@b.c")
    with pytest.raises(ValueError):
        apply_patch(target, {"job_post_id": "job_2"}, immutable=("job_post_id",))
    with pytest.raises(AttributeError):
        apply_patch(target, {"nickname": "x"})
    assert target.job_post_id == "job_1"
