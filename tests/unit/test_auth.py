"""Tests for role checks."""

from recruitai.services.auth import CurrentUser, Role, can_access_job, has_any_role


def test_has_any_role():
    recruiter = CurrentUser(id="u1", role=Role.RECRUITER, company_id="acme")

    assert has_any_role(recruiter, [Role.RECRUITER, Role.COMPANY_ADMIN])
    assert not has_any_role(recruiter, [Role.SUPER_ADMIN])
    assert not has_any_role(recruiter, [])


def test_anonymous_holds_no_role():
    assert has_any_role(None, list(Role)) is False


def test_owner_can_access_job():
    user = CurrentUser(id="u1", role=Role.CANDIDATE)
    assert can_access_job(user, "u1", None)
    assert not can_access_job(user, "u2", None)


def test_company_admin_scoped_to_company():
    admin = CurrentUser(id="a1", role=Role.COMPANY_ADMIN, company_id="acme")

    assert can_access_job(admin, "u2", "acme")
    assert not can_access_job(admin, "u2", "globex")
    assert not can_access_job(admin, "u2", None)


def test_super_admin_can_access_any_job():
    root = CurrentUser(id="root", role=Role.SUPER_ADMIN)
    assert can_access_job(root, "u2", "globex")


def test_recruiter_cannot_access_other_users_jobs():
    recruiter = CurrentUser(id="r1", role=Role.RECRUITER, company_id="acme")
    assert not can_access_job(recruiter, "u2", "acme")
