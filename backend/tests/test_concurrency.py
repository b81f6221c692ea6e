import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from dashng.models import Product
from dashng.services import concurrency
from dashng.services.concurrency import run_with_retry


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(concurrency.time, "sleep", calls.append)
    return calls


def _stage_product(db_session, name):
    db_session.add(Product(name=name, description="d", price_cents=100, category="c"))
    db_session.flush()


class TestRunWithRetry:

    @pytest.mark.parametrize(
        "error",
        [StaleDataError("version mismatch"), OperationalError("UPDATE products", {}, Exception("locked"))],
    )
    def test_conflict_retried_after_rollback(self, db_session, sleeps, error):
        attempts = []

        def op():
            attempts.append(db_session.query(Product).count())
            _stage_product(db_session, f"attempt-{len(attempts)}")
            if len(attempts) == 1:
                raise error
            db_session.commit()
            return "done"

        assert run_with_retry(op) == "done"
        # The first attempt's staged row was rolled back before the retry
        assert attempts == [0, 0]
        assert [p.name for p in db_session.query(Product).all()] == ["attempt-2"]
        assert sleeps == [0.1]

    def test_gives_up_after_three_attempts(self, db_session, sleeps):
        attempts = []

        def op():
            attempts.append(1)
            _stage_product(db_session, "never")
            raise StaleDataError("still stale")

        with pytest.raises(StaleDataError):
            run_with_retry(op)

        assert len(attempts) == 3
        assert sleeps == [0.1, 0.2]
        assert db_session.query(Product).count() == 0

    def test_other_errors_not_retried(self, db_session, sleeps):
        attempts = []

        def op():
            attempts.append(1)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_with_retry(op)

        assert len(attempts) == 1
        assert sleeps == []
