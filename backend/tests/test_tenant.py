from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from mohs.core.errors import InvalidArgument, TransactionFailure
from mohs.db import models
from mohs.db.tenant import TenantScope


class TestTenantScope:
    @pytest.mark.parametrize("tenant_id", ["", "   ", None])
    def test_blank_tenant_rejected(self, db, tenant_id):
        with pytest.raises(InvalidArgument):
            TenantScope(db, tenant_id)

    def test_add_stamps_tenant(self, db):
        scope = TenantScope(db, "clinic-a")
        with scope.transaction("add_provider"):
            provider = scope.add(models.Provider(id="doc-9", first_name="Jane", last_name="Doe"))
        assert provider.tenant_id == "clinic-a"
        assert TenantScope(db, "clinic-b").query(models.Provider).count() == 0
        assert scope.query(models.Provider).count() == 1

    def test_store_error_rolls_back_and_wraps(self):
        session = MagicMock()
        scope = TenantScope(session, "clinic-a")
        error = OperationalError("UPDATE mohs_cases", {}, Exception("database is locked"))
        with pytest.raises(TransactionFailure) as exc_info:
            with scope.transaction("update_case_status"):
                raise error
        assert exc_info.value.__cause__ is error
        session.rollback.assert_called_once()
        session.commit.assert_not_called()

    def test_other_errors_roll_back_and_propagate(self):
        session = MagicMock()
        scope = TenantScope(session, "clinic-a")
        with pytest.raises(InvalidArgument):
            with scope.transaction("add_stage"):
                raise InvalidArgument("bad stage number")
        session.rollback.assert_called_once()

    def test_success_commits(self):
        session = MagicMock()
        with TenantScope(session, "clinic-a").transaction("create_case"):
            pass
        session.commit.assert_called_once()
        session.rollback.assert_not_called()
