"""Tests for the authorization chain."""

import pytest

from disease_report.auth.guards import (
    HOSPITAL_PARAM,
    Outcome,
    RequestShape,
    authorize,
    hospital_scoped,
    manages_target,
    require_capability,
    require_hospital,
    require_role,
    run_chain,
    same_hospital_as_target,
)
from disease_report.auth.policy import Capability, GrantTable
from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.exceptions import AppError, ErrorKind

SUPERADMIN = Principal("u-1", "root", Role.SUPERADMIN)
ADMIN = Principal("u-2", "admin", Role.ADMIN, "000000001")
USER = Principal("u-3", "user", Role.USER, "000000001")
USER_NO_HOSPITAL = Principal("u-4", "drifter", Role.USER)

READ_GRANTS = GrantTable(
    {(int(Role.ADMIN), "PATIENT_VISIT_READ"): True, (int(Role.USER), "PATIENT_VISIT_READ"): True}
)


class TestHospitalScopedGuard:
    """Tests for hospital_scoped()."""

    def test_superadmin_query_untouched(self):
        """No hospitalCode is injected for an unrestricted caller."""
        result = hospital_scoped()(SUPERADMIN, RequestShape(query={"page": "1"}))

        assert result.outcome == Outcome.PASS
        assert HOSPITAL_PARAM not in result.shape.query

    def test_superadmin_keeps_requested_filter(self):
        shape = RequestShape(query={HOSPITAL_PARAM: "000000002"})
        result = hospital_scoped()(SUPERADMIN, shape)
        assert result.shape.query[HOSPITAL_PARAM] == "000000002"

    @pytest.mark.parametrize("requested", [None, "000000001", "000000002", ""])
    def test_admin_always_own_hospital(self, requested):
        query = {} if requested is None else {HOSPITAL_PARAM: requested}
        result = hospital_scoped()(ADMIN, RequestShape(query=query))

        assert result.outcome == Outcome.NARROW
        assert result.shape.query[HOSPITAL_PARAM] == "000000001"

    def test_custom_param(self):
        result = hospital_scoped("hospital")(USER, RequestShape())
        assert result.shape.query == {"hospital": "000000001"}

    def test_scoped_without_hospital_denied(self):
        result = hospital_scoped()(USER_NO_HOSPITAL, RequestShape())

        assert result.outcome == Outcome.DENY
        assert result.error.kind == ErrorKind.HOSPITAL_NOT_ASSIGNED


class TestRunChain:
    """Tests for run_chain()."""

    def test_narrowed_shape_flows_through(self):
        guards = [require_capability(Capability.PATIENT_VISIT_READ), hospital_scoped()]
        shape = RequestShape(query={HOSPITAL_PARAM: "000000002"}, grants=READ_GRANTS)

        result = run_chain(USER, shape, guards)
        assert result.query[HOSPITAL_PARAM] == "000000001"

    def test_first_denial_raised(self):
        guards = [require_role(Role.ADMIN), require_hospital()]

        with pytest.raises(AppError) as exc_info:
            run_chain(USER_NO_HOSPITAL, RequestShape(), guards)
        assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED
        assert exc_info.value.message == "Admin access required"

    def test_role_three_denied_admin_and_superadmin_routes(self):
        for role in (Role.ADMIN, Role.SUPERADMIN):
            with pytest.raises(AppError) as exc_info:
                run_chain(USER, RequestShape(), [require_role(role)])
            assert exc_info.value.status_code == 403

    def test_capability_without_grant(self):
        with pytest.raises(AppError) as exc_info:
            run_chain(USER, RequestShape(grants=READ_GRANTS), [require_capability(Capability.PATIENT_VISIT_CREATE)])
        assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED

    def test_require_hospital_passes_superadmin(self):
        assert run_chain(SUPERADMIN, RequestShape(), [require_hospital()]) == RequestShape()


class TestTargetGuards:
    """Tests for manages_target() and same_hospital_as_target()."""

    def test_admin_on_plain_user(self):
        shape = RequestShape(target_role=Role.USER, target_hospital_code="000000001")
        run_chain(ADMIN, shape, [manages_target(), same_hospital_as_target()])

    def test_admin_on_admin(self):
        shape = RequestShape(target_role=Role.ADMIN, target_hospital_code="000000001")

        with pytest.raises(AppError) as exc_info:
            run_chain(ADMIN, shape, [manages_target()])
        assert exc_info.value.kind == ErrorKind.ROLE_HIERARCHY_VIOLATION

    def test_admin_on_other_hospital(self):
        shape = RequestShape(target_role=Role.USER, target_hospital_code="000000002")

        with pytest.raises(AppError) as exc_info:
            run_chain(ADMIN, shape, [manages_target(), same_hospital_as_target()])
        assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED

    @pytest.mark.parametrize("target_hospital", [None, "000000001"])
    def test_admin_without_hospital(self, target_hospital):
        admin = Principal("u-5", "floating-admin", Role.ADMIN)
        shape = RequestShape(target_role=Role.USER, target_hospital_code=target_hospital)

        result = same_hospital_as_target()(admin, shape)
        assert result.outcome == Outcome.DENY
        assert result.error.kind == ErrorKind.HOSPITAL_NOT_ASSIGNED

    def test_missing_target(self):
        result = manages_target()(ADMIN, RequestShape())
        assert result.outcome == Outcome.DENY

    def test_superadmin_any_hospital(self):
        shape = RequestShape(target_role=Role.ADMIN, target_hospital_code="000000002")
        run_chain(SUPERADMIN, shape, [manages_target(), same_hospital_as_target()])

    def test_target_guard_needs_loader(self):
        with pytest.raises(ValueError):
            authorize(require_role(Role.ADMIN), manages_target())
