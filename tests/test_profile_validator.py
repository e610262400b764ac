"""Intake validation: every rule, reported all at once."""

import re

import pytest

from quickloan.models.loan_schemas import EmploymentTier
from quickloan.services.errors import FieldValidationError
from quickloan.services.profile_validator import (
    collect_profile_errors, generate_conversation_id, validate_profile
)


def test_valid_form_builds_profile(salaried_form):
    profile = validate_profile(salaried_form)

    assert profile.name == "Asha Verma"
    assert profile.age == 29
    assert profile.pan == "ABCDE1234F"  # upper-cased
    assert profile.employment == EmploymentTier.SALARIED
    assert profile.salary == 50000
    assert profile.requested_amount == 300000


def test_profile_is_immutable(salaried_form):
    profile = validate_profile(salaried_form)
    with pytest.raises(Exception):
        profile.salary = 1


def test_empty_form_reports_every_field():
    errors = collect_profile_errors({})
    assert set(errors) == {
        "name", "age", "mobile", "address", "pan", "aadhaar",
        "employment", "salary", "requested_amount", "purpose",
    }


def test_errors_are_not_fail_fast(salaried_form):
    salaried_form.update(mobile="12345", aadhaar="1234", requested_amount="0")

    with pytest.raises(FieldValidationError) as exc:
        validate_profile(salaried_form)

    assert exc.value.errors == {
        "mobile": "Enter a 10-digit mobile number.",
        "aadhaar": "Aadhaar must be 12 digits.",
        "requested_amount": "Enter valid loan amount.",
    }


@pytest.mark.parametrize("age", ["0", "121", "abc", "", "28.5", -3])
def test_age_out_of_range(salaried_form, age):
    salaried_form["age"] = age
    assert "age" in collect_profile_errors(salaried_form)


@pytest.mark.parametrize("age", ["1", "120", 45])
def test_age_bounds_accepted(salaried_form, age):
    salaried_form["age"] = age
    assert "age" not in collect_profile_errors(salaried_form)


@pytest.mark.parametrize("pan", ["ABCDE1234", "ABCD11234F", "12345ABCDE", ""])
def test_bad_pan(salaried_form, pan):
    salaried_form["pan"] = pan
    assert collect_profile_errors(salaried_form)["pan"].startswith("PAN must be 10 characters")


def test_zero_salary_allowed_negative_rejected(salaried_form):
    salaried_form["salary"] = "0"
    assert "salary" not in collect_profile_errors(salaried_form)

    salaried_form["salary"] = "-1"
    assert collect_profile_errors(salaried_form)["salary"] == "Enter a valid salary."


def test_blank_text_fields(salaried_form):
    salaried_form.update(name="   ", address="", purpose=None, employment=" ")
    errors = collect_profile_errors(salaried_form)

    assert errors["name"] == "Name is required."
    assert errors["address"] == "Address is required."
    assert errors["purpose"] == "Loan purpose is required."
    assert errors["employment"] == "Select employment status."


def test_unrecognised_employment_is_unknown_tier(salaried_form):
    salaried_form["employment"] = "Freelance astronaut"
    assert validate_profile(salaried_form).employment == EmploymentTier.UNKNOWN


def test_conversation_id_format():
    conv = generate_conversation_id()
    assert re.match(r"^conv_\d{4}-\d{2}-\d{2}T[\d:.]+_[0-9a-f]{4}$", conv)
