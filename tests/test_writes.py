import pytest

from transparency.errors import ParseError, TransactionRejected, ValidationError


def tx_payload(**overrides):
    data = {
        "department": "MOH",
        "projectName": "Rural clinic",
        "projectType": "Healthcare",
        "budgetAllocated": "1.5",
        "amountSpent": "0.5",
        "location": "Kelantan",
        "description": "Phase 1",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_record_transaction_submits_base_units(service, spending):
    tx_hash = await service.record_transaction(tx_payload())

    assert tx_hash.startswith("0x")
    fn_name, args = spending.submitted[0]
    assert fn_name == "recordTransaction"
    assert args == ("MOH", "Rural clinic", "Healthcare", 15 * 10 ** 17, 5 * 10 ** 17, "Kelantan", "Phase 1")


@pytest.mark.asyncio
async def test_record_transaction_defaults_spent_and_description(service, spending):
    await service.record_transaction(tx_payload(amountSpent=None, description=None))
    _, args = spending.submitted[0]
    assert args[4] == 0
    assert args[6] == ""


@pytest.mark.asyncio
async def test_overspend_is_rejected_before_submission(service, spending):
    with pytest.raises(ValidationError) as info:
        await service.record_transaction(tx_payload(amountSpent="2"))
    assert info.value.field == "amountSpent"
    assert spending.submitted == []


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["department", "projectName", "projectType", "budgetAllocated", "location"])
async def test_missing_required_field(service, spending, field):
    with pytest.raises(ValidationError):
        await service.record_transaction(tx_payload(**{field: "  "}))
    assert spending.submitted == []


@pytest.mark.asyncio
async def test_zero_budget_and_bad_amounts(service, spending):
    with pytest.raises(ValidationError):
        await service.record_transaction(tx_payload(budgetAllocated="0", amountSpent="0"))
    with pytest.raises(ParseError):
        await service.record_transaction(tx_payload(budgetAllocated="lots"))
    assert spending.submitted == []


@pytest.mark.asyncio
async def test_rejected_write_surfaces_without_retry(service, spending):
    spending.reject_writes = True
    with pytest.raises(TransactionRejected):
        await service.record_transaction(tx_payload())
    assert spending.submitted == []


@pytest.mark.asyncio
async def test_submit_feedback(service, feedback):
    tx_hash = await service.submit_feedback(3, "Good progress", 4)
    assert tx_hash.startswith("0x")
    assert feedback.submitted == [("submitFeedback", (3, "Good progress", 4))]


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1, 2.5, "5", True])
async def test_out_of_range_rating_never_reaches_chain(service, feedback, rating):
    with pytest.raises(ValidationError):
        await service.submit_feedback(1, "ok", rating)
    assert feedback.submitted == []


@pytest.mark.asyncio
async def test_comment_bounds(service, feedback):
    await service.submit_feedback(1, "x" * 500, 3)
    with pytest.raises(ValidationError):
        await service.submit_feedback(1, "x" * 501, 3)
    with pytest.raises(ValidationError):
        await service.submit_feedback(1, "   ", 3)
    assert len(feedback.submitted) == 1


@pytest.mark.asyncio
async def test_invalid_transaction_id(service, feedback):
    with pytest.raises(ValidationError):
        await service.submit_feedback(0, "ok", 3)
    with pytest.raises(ValidationError):
        await service.submit_feedback("1", "ok", 3)
    assert feedback.submitted == []


@pytest.mark.asyncio
async def test_estimate_gas_for_record_transaction(service, spending):
    estimate = await service.estimate_gas(
        "recordTransaction",
        ["MOH", "Clinic", "Health", "1.5", "0", "Ipoh", ""],
    )

    assert estimate == {
        "gasLimit": "120000",
        "gasPrice": "2",
        "totalCost": "0.00024",
        "totalCostWei": str(120_000 * 2_000_000_000),
    }
    _, args = spending.submitted_estimate
    assert args[3] == 15 * 10 ** 17
    assert args[4] == 0


@pytest.mark.asyncio
async def test_estimate_gas_for_feedback(service):
    estimate = await service.estimate_gas("submitFeedback", [1, "ok", 5], ledger="feedback")
    assert estimate["gasLimit"] == "80000"
    assert estimate["gasPrice"] == "1.5"


@pytest.mark.asyncio
async def test_estimate_gas_rejects_unknown_methods(service):
    with pytest.raises(ValidationError):
        await service.estimate_gas("transferOwnership", [], ledger="spending")
    with pytest.raises(ValidationError):
        await service.estimate_gas("submitFeedback", [], ledger="treasury")


@pytest.mark.asyncio
async def test_budget_beyond_uint256_is_rejected_before_submission(service, spending):
    with pytest.raises(ParseError):
        await service.record_transaction(tx_payload(budgetAllocated=str(2 ** 256), amountSpent="0"))
    assert spending.submitted == []
