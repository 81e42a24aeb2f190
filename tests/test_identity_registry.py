"""Tests for the identity registry — signup, authentication, control transfer.

Proves:
- Email is unique across employee and company accounts.
- authenticate succeeds iff the caller is the account's current principal.
- After a control transfer the old principal is locked out.
- A refused signup consumes no id and leaves the email free.
- Id 0 never names a live account.
"""

from __future__ import annotations

import pytest
from eth_account import Account

from chainedin.errors import (
    AuthenticationFailedError,
    DuplicateEmailError,
    InvalidInputError,
    InvalidPrincipalError,
    UnknownCompanyError,
    UnknownReferenceError,
)
from chainedin.identity.principal import ZERO_ADDRESS, normalize_principal
from chainedin.identity.registry import IdentityRegistry
from chainedin.models.account import AccountKind, Company, Employee

ALICE = Account.create().address
BOB = Account.create().address
ACME_ADMIN = Account.create().address


@pytest.fixture
def identity() -> IdentityRegistry:
    return IdentityRegistry({})


class TestSignUp:
    def test_creates_employee_account(self, identity: IdentityRegistry) -> None:
        employee = identity.sign_up(
            "employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE,
        )
        assert isinstance(employee, Employee)
        assert employee.employee_id == 1
        assert employee.name == "Employee"
        assert employee.principal == ALICE
        assert employee.company_id is None
        assert employee.is_manager is False
        assert employee.current_experience_id is None
        assert employee.experience_ids == []
        assert employee.skill_ids == []

    def test_creates_company_account(self, identity: IdentityRegistry) -> None:
        company = identity.sign_up(
            "admin@company.com", "Company", AccountKind.COMPANY, ACME_ADMIN,
        )
        assert isinstance(company, Company)
        assert company.company_id == 1
        assert company.name == "Company"
        assert company.principal == ACME_ADMIN

    def test_ids_are_assigned_per_kind(self, identity: IdentityRegistry) -> None:
        e1 = identity.sign_up("a@x.com", "A", AccountKind.EMPLOYEE, ALICE)
        c1 = identity.sign_up("co@x.com", "Co", AccountKind.COMPANY, ACME_ADMIN)
        e2 = identity.sign_up("b@x.com", "B", AccountKind.EMPLOYEE, BOB)
        assert (e1.employee_id, c1.company_id, e2.employee_id) == (1, 1, 2)

    def test_kind_accepts_string_value(self, identity: IdentityRegistry) -> None:
        company = identity.sign_up("co@x.com", "Co", "company", ACME_ADMIN)
        assert company.kind == AccountKind.COMPANY

    def test_unknown_kind_rejected(self, identity: IdentityRegistry) -> None:
        with pytest.raises(InvalidInputError):
            identity.sign_up("co@x.com", "Co", "partnership", ACME_ADMIN)

    def test_rejects_duplicate_email_same_kind(self, identity: IdentityRegistry) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(DuplicateEmailError):
            identity.sign_up("e@c.com", "E2", AccountKind.EMPLOYEE, ALICE)

    def test_rejects_duplicate_email_across_kinds(self, identity: IdentityRegistry) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(DuplicateEmailError):
            identity.sign_up("e@c.com", "Co", AccountKind.COMPANY, ALICE)

    def test_surrounding_whitespace_does_not_evade_uniqueness(
        self, identity: IdentityRegistry,
    ) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(DuplicateEmailError):
            identity.sign_up("  e@c.com ", "E", AccountKind.EMPLOYEE, BOB)

    def test_duplicate_does_not_mutate_state(self, identity: IdentityRegistry) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(DuplicateEmailError):
            identity.sign_up("e@c.com", "E2", AccountKind.EMPLOYEE, BOB)
        assert identity.employee_count == 1
        assert identity.get_employee(1).name == "E"
        assert identity.get_employee(2) is None
        # Next successful signup still gets id 2
        nxt = identity.sign_up("f@c.com", "F", AccountKind.EMPLOYEE, BOB)
        assert nxt.employee_id == 2

    def test_blank_email_rejected(self, identity: IdentityRegistry) -> None:
        with pytest.raises(InvalidInputError):
            identity.sign_up("   ", "E", AccountKind.EMPLOYEE, ALICE)

    def test_blank_name_rejected(self, identity: IdentityRegistry) -> None:
        with pytest.raises(InvalidInputError):
            identity.sign_up("e@c.com", "", AccountKind.EMPLOYEE, ALICE)
        assert identity.find_by_email("e@c.com") is None

    def test_invalid_caller_rejected(self, identity: IdentityRegistry) -> None:
        with pytest.raises(InvalidPrincipalError):
            identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, "not-an-address")
        assert identity.employee_count == 0

    def test_zero_address_cannot_sign_up(self, identity: IdentityRegistry) -> None:
        with pytest.raises(InvalidPrincipalError):
            identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ZERO_ADDRESS)

    def test_principal_stored_in_checksum_form(self, identity: IdentityRegistry) -> None:
        employee = identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE.lower())
        assert employee.principal == ALICE


class TestAuthenticate:
    def test_authenticates_employee(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        assert identity.authenticate("employee@company.com", ALICE) == (
            AccountKind.EMPLOYEE, 1,
        )

    def test_authenticates_company(self, identity: IdentityRegistry) -> None:
        identity.sign_up("admin@company.com", "Company", AccountKind.COMPANY, ACME_ADMIN)
        assert identity.authenticate("admin@company.com", ACME_ADMIN) == (
            AccountKind.COMPANY, 1,
        )

    def test_unknown_email_fails(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("employe@company.com", ALICE)

    def test_wrong_principal_fails(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("employee@company.com", BOB)

    def test_malformed_caller_fails(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("employee@company.com", "0x123")

    def test_principal_comparison_ignores_hex_case(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        assert identity.authenticate("employee@company.com", ALICE.lower())[1] == 1


class TestControlTransfer:
    def test_updates_employee_principal(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        identity.update_controlling_principal(
            AccountKind.EMPLOYEE, "employee@company.com", BOB, ALICE,
        )
        assert identity.get_employee(1).principal == BOB
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("employee@company.com", ALICE)
        assert identity.authenticate("employee@company.com", BOB) == (
            AccountKind.EMPLOYEE, 1,
        )

    def test_updates_company_principal(self, identity: IdentityRegistry) -> None:
        identity.sign_up("admin@company.com", "Company", AccountKind.COMPANY, ACME_ADMIN)
        identity.update_controlling_principal(
            AccountKind.COMPANY, "admin@company.com", BOB, ACME_ADMIN,
        )
        assert identity.get_company(1).principal == BOB
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("admin@company.com", ACME_ADMIN)
        assert identity.authenticate("admin@company.com", BOB)[0] == AccountKind.COMPANY

    def test_prevents_unauthorized_update(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        identity.sign_up("employee2@company.com", "Employee2", AccountKind.EMPLOYEE, BOB)
        with pytest.raises(AuthenticationFailedError):
            identity.update_controlling_principal(
                AccountKind.EMPLOYEE, "employee@company.com", BOB, BOB,
            )
        assert identity.get_employee(1).principal == ALICE

    def test_kind_must_match_account(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        with pytest.raises(AuthenticationFailedError):
            identity.update_controlling_principal(
                AccountKind.COMPANY, "employee@company.com", BOB, ALICE,
            )
        assert identity.get_employee(1).principal == ALICE

    def test_invalid_new_principal_rejected(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        for bad in ("nope", ZERO_ADDRESS):
            with pytest.raises(InvalidPrincipalError):
                identity.update_controlling_principal(
                    AccountKind.EMPLOYEE, "employee@company.com", bad, ALICE,
                )
        assert identity.get_employee(1).principal == ALICE

    def test_email_and_id_survive_transfer(self, identity: IdentityRegistry) -> None:
        identity.sign_up("employee@company.com", "Employee", AccountKind.EMPLOYEE, ALICE)
        account = identity.update_controlling_principal(
            "employee", "employee@company.com", BOB, ALICE,
        )
        assert account.email == "employee@company.com"
        assert account.account_id == 1
        assert identity.find_by_email("employee@company.com") is account


class TestLookups:
    def test_id_zero_is_never_live(self, identity: IdentityRegistry) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        identity.sign_up("co@c.com", "Co", AccountKind.COMPANY, ACME_ADMIN)
        assert identity.get_employee(0) is None
        assert identity.get_company(0) is None
        with pytest.raises(UnknownReferenceError):
            identity.require_employee(0)
        with pytest.raises(UnknownCompanyError):
            identity.require_company(0)

    def test_none_is_absent(self, identity: IdentityRegistry) -> None:
        assert identity.get_employee(None) is None
        with pytest.raises(UnknownCompanyError):
            identity.require_company(None)

    def test_unknown_company_is_an_unknown_reference(self) -> None:
        assert issubclass(UnknownCompanyError, UnknownReferenceError)
        assert UnknownCompanyError.kind == "UnknownCompany"

    def test_accounts_controlled_by(self, identity: IdentityRegistry) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        identity.sign_up("co@c.com", "Co", AccountKind.COMPANY, ALICE)
        identity.sign_up("b@c.com", "B", AccountKind.EMPLOYEE, BOB)
        accounts = identity.accounts_controlled_by(ALICE.lower())
        assert [(a.kind, a.account_id) for a in accounts] == [
            (AccountKind.EMPLOYEE, 1), (AccountKind.COMPANY, 1),
        ]
        assert [c.company_id for c in identity.companies_controlled_by(ALICE)] == [1]
        assert identity.companies_controlled_by(BOB) == []
        assert identity.accounts_controlled_by("garbage") == []


class TestPrincipalNormalisation:
    def test_checksums_lowercase_address(self) -> None:
        assert normalize_principal(ALICE.lower()) == ALICE

    def test_rejects_non_string(self) -> None:
        with pytest.raises(InvalidPrincipalError):
            normalize_principal(12345)

    def test_rejects_short_hex(self) -> None:
        with pytest.raises(InvalidPrincipalError):
            normalize_principal("0x1234")


class TestTextInput:
    @pytest.mark.parametrize(
        "email,name",
        [("a\ud800@x.com", "A"), ("a@x.com", "A\udfff")],
    )
    def test_unencodable_text_rejected(
        self, identity: IdentityRegistry, email: str, name: str,
    ) -> None:
        with pytest.raises(InvalidInputError, match="UTF-8"):
            identity.sign_up(email, name, AccountKind.EMPLOYEE, ALICE)
        assert identity.employee_count == 0
        assert identity.email_index() == {}

    def test_non_ascii_text_accepted(self, identity: IdentityRegistry) -> None:
        employee = identity.sign_up("zoë@exämple.com", "Zoë", AccountKind.EMPLOYEE, ALICE)
        assert employee.email == "zoë@exämple.com"
        assert identity.authenticate("zoë@exämple.com", ALICE)[1] == 1

    def test_unknown_unencodable_email_fails_cleanly(self, identity: IdentityRegistry) -> None:
        with pytest.raises(AuthenticationFailedError):
            identity.authenticate("x\ud800@x.com", ALICE)


class TestRecordIds:
    @pytest.mark.parametrize("bad_id", [True, 1.0, "1", -1])
    def test_only_positive_ints_name_records(
        self, identity: IdentityRegistry, bad_id: object,
    ) -> None:
        identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, ALICE)
        identity.sign_up("co@c.com", "Co", AccountKind.COMPANY, ACME_ADMIN)
        assert identity.get_employee(bad_id) is None
        assert identity.get_company(bad_id) is None
        with pytest.raises(UnknownReferenceError):
            identity.require_employee(bad_id)
        with pytest.raises(UnknownCompanyError):
            identity.require_company(bad_id)
