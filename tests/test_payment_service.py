import pytest
from unittest.mock import AsyncMock
from datetime import datetime, timezone

from payment_api.exceptions import (
    IdentityGenerationError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    PaymentValidationError,
    StorageError,
)
from payment_api.models import Payment, PaymentState
from payment_api.repository import PaymentRepository
from payment_api.schemas import PaymentCreate
from payment_api.service import PaymentService

PAYMENT_DATE = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)
PROCESSED_AT = datetime(2026, 10, 19, 12, 0, 5, tzinfo=timezone.utc)


def build_payment(uid="pay-1", processed=False):
    return Payment(
        id=1,
        uid=uid,
        account_origin="ES00-ORIGIN",
        account_target="ES00-TARGET",
        amount=25.0,
        date=PAYMENT_DATE,
        processed=processed,
        processed_date=PROCESSED_AT if processed else None,
    )


def build_create(**overrides):
    data = {
        "accountOrigin": "ES00-ORIGIN",
        "accountTarget": "ES00-TARGET",
        "amount": 25.0,
        "date": PAYMENT_DATE,
    }
    data.update(overrides)
    return PaymentCreate.model_validate(data)


@pytest.fixture
def repository():
    repository = AsyncMock(spec=PaymentRepository)
    # insert echoes back what it was given
    repository.insert.side_effect = lambda payment: payment
    return repository


@pytest.fixture
def service(repository):
    return PaymentService(repository, clock=lambda: PROCESSED_AT, uid_factory=lambda: "generated-uid")


@pytest.mark.asyncio
async def test_create_payment_starts_unprocessed(service, repository):
    """
    Test case 1: A valid payment is stored unprocessed with a generated uid.
    """
    payment = await service.create_payment(build_create())

    repository.insert.assert_awaited_once()
    assert payment.uid == "generated-uid"
    assert payment.processed is False
    assert payment.processed_date is None
    assert payment.state is PaymentState.UNPROCESSED
    assert payment.amount == 25.0
    assert payment.date == PAYMENT_DATE


@pytest.mark.asyncio
async def test_create_payment_ignores_caller_uid(repository):
    service = PaymentService(repository)
    payment_data = PaymentCreate.model_validate({
        "uid": "caller-uid",
        "accountOrigin": "A",
        "accountTarget": "B",
        "amount": 1,
        "date": "2026-10-01T09:30:00Z",
    })

    payment = await service.create_payment(payment_data)

    assert payment.uid
    assert payment.uid != "caller-uid"


@pytest.mark.asyncio
async def test_generated_uids_are_distinct(repository):
    service = PaymentService(repository)

    first = await service.create_payment(build_create())
    second = await service.create_payment(build_create())

    assert first.uid != second.uid


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"accountOrigin": ""}, "account origin is mandatory"),
        ({"accountTarget": ""}, "account target is mandatory"),
        ({"amount": 0}, "amount must be a positive number"),
        ({"amount": -10.5}, "amount must be a positive number"),
        # origin is reported before target, target before amount
        ({"accountOrigin": "", "accountTarget": "", "amount": 0}, "account origin is mandatory"),
        ({"accountTarget": "", "amount": -1}, "account target is mandatory"),
    ],
)
async def test_create_payment_validation(service, repository, overrides, message):
    with pytest.raises(PaymentValidationError) as exc_info:
        await service.create_payment(build_create(**overrides))

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    repository.insert.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [float("nan"), float("-inf")])
async def test_create_payment_rejects_non_finite_amount(service, repository, amount):
    # Bypass schema validation to reach the service rule directly
    payment_data = PaymentCreate.model_construct(
        account_origin="ES00-ORIGIN",
        account_target="ES00-TARGET",
        amount=amount,
        date=PAYMENT_DATE,
    )

    with pytest.raises(PaymentValidationError) as exc_info:
        await service.create_payment(payment_data)

    assert exc_info.value.message == "amount must be a positive number"
    repository.insert.assert_not_awaited()


def test_create_schema_ignores_snake_case_keys():
    payment_data = PaymentCreate.model_validate({
        "account_origin": "ES00-ORIGIN",
        "account_target": "ES00-TARGET",
        "amount": 25.0,
        "date": PAYMENT_DATE,
    })

    # only the camelCase names are read from input
    assert payment_data.account_origin == ""
    assert payment_data.account_target == ""


@pytest.mark.asyncio
async def test_create_payment_uid_generation_failure(repository):
    def broken_uid_factory():
        raise OSError("no entropy")

    service = PaymentService(repository, uid_factory=broken_uid_factory)

    with pytest.raises(IdentityGenerationError) as exc_info:
        await service.create_payment(build_create())

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, OSError)
    repository.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_payment_storage_failure(service, repository):
    repository.insert.side_effect = StorageError("insert payment failed")

    with pytest.raises(StorageError):
        await service.create_payment(build_create())


@pytest.mark.asyncio
async def test_list_payments(service, repository):
    payments = [build_payment("pay-1"), build_payment("pay-2", processed=True)]
    repository.list_all.return_value = payments

    assert await service.list_payments() == payments


@pytest.mark.asyncio
async def test_get_payment_not_found(service, repository):
    repository.find_by_uid.return_value = None

    with pytest.raises(PaymentNotFoundError) as exc_info:
        await service.get_payment("missing")

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_mark_processed(service, repository):
    """
    Test case 2: Processing an unprocessed payment stamps the clock's time.
    """
    repository.find_by_uid.return_value = build_payment()
    repository.mark_processed.return_value = build_payment(processed=True)

    payment = await service.mark_processed("pay-1")

    repository.mark_processed.assert_awaited_once_with("pay-1", PROCESSED_AT)
    assert payment.processed is True
    assert payment.processed_date == PROCESSED_AT
    assert payment.state is PaymentState.PROCESSED


@pytest.mark.asyncio
async def test_mark_processed_uses_whole_seconds(repository):
    service = PaymentService(repository)
    repository.find_by_uid.return_value = build_payment()
    repository.mark_processed.return_value = build_payment(processed=True)
    before = datetime.now(timezone.utc).replace(microsecond=0)

    await service.mark_processed("pay-1")

    _, processed_at = repository.mark_processed.await_args.args
    assert processed_at.microsecond == 0
    assert processed_at >= before
    assert processed_at.tzinfo is not None


@pytest.mark.asyncio
async def test_mark_processed_twice_conflicts(service, repository):
    """
    Test case 3: A processed payment cannot be processed again.
    """
    repository.find_by_uid.return_value = build_payment(processed=True)

    with pytest.raises(PaymentAlreadyProcessedError) as exc_info:
        await service.mark_processed("pay-1")

    assert exc_info.value.status_code == 409
    repository.mark_processed.assert_not_awaited()


@pytest.mark.asyncio
async def test_mark_processed_lost_race_conflicts(service, repository):
    # Read saw it unprocessed, but the conditional update matched nothing
    repository.find_by_uid.return_value = build_payment()
    repository.mark_processed.return_value = None

    with pytest.raises(PaymentAlreadyProcessedError):
        await service.mark_processed("pay-1")


@pytest.mark.asyncio
async def test_mark_processed_not_found(service, repository):
    repository.find_by_uid.return_value = None

    with pytest.raises(PaymentNotFoundError):
        await service.mark_processed("missing")

    repository.mark_processed.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_payment(service, repository):
    payment = build_payment()
    repository.find_by_uid.return_value = payment

    await service.delete_payment("pay-1")

    repository.remove.assert_awaited_once_with(payment)


@pytest.mark.asyncio
async def test_delete_processed_payment_conflicts(service, repository):
    """
    Test case 4: A processed payment is never deleted.
    """
    repository.find_by_uid.return_value = build_payment(processed=True)

    with pytest.raises(PaymentAlreadyProcessedError):
        await service.delete_payment("pay-1")

    repository.remove.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_payment_not_found(service, repository):
    repository.find_by_uid.return_value = None

    with pytest.raises(PaymentNotFoundError):
        await service.delete_payment("missing")


@pytest.mark.asyncio
async def test_delete_payment_storage_failure(service, repository):
    repository.find_by_uid.return_value = build_payment()
    repository.remove.side_effect = StorageError("delete payment failed")

    with pytest.raises(StorageError):
        await service.delete_payment("pay-1")
