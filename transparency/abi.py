"""
transparency/abi.py

Minimal ABIs of the two ledger contracts: only the functions this service calls.
"""

from __future__ import annotations


def _fn(name, inputs, outputs, mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": outputs,
    }


def _out(*pairs):
    return [{"name": n, "type": t} for n, t in pairs]


SPENDING_TRANSACTION_TUPLE = {
    "name": "",
    "type": "tuple",
    "components": _out(
        ("id", "uint256"),
        ("department", "string"),
        ("projectName", "string"),
        ("projectType", "string"),
        ("budgetAllocated", "uint256"),
        ("amountSpent", "uint256"),
        ("location", "string"),
        ("description", "string"),
        ("timestamp", "uint256"),
        ("recordedBy", "address"),
        ("isActive", "bool"),
    ),
}

FEEDBACK_TUPLE = {
    "name": "",
    "type": "tuple",
    "components": _out(
        ("id", "uint256"),
        ("transactionId", "uint256"),
        ("citizen", "address"),
        ("comment", "string"),
        ("rating", "uint8"),
        ("timestamp", "uint256"),
        ("isActive", "bool"),
    ),
}


GOVERNMENT_SPENDING_ABI = [
    _fn("transactionCount", [], _out(("", "uint256"))),
    _fn("getTransaction", [("_transactionId", "uint256")], [SPENDING_TRANSACTION_TUPLE]),
    _fn("getAllDepartments", [], _out(("", "string[]"))),
    _fn(
        "getTotalSpendingByDepartment",
        [("_department", "string")],
        _out(("totalBudget", "uint256"), ("totalSpent", "uint256")),
    ),
    _fn(
        "getTransactionsByDateRange",
        [("_startTime", "uint256"), ("_endTime", "uint256")],
        _out(("", "uint256[]")),
    ),
    _fn(
        "recordTransaction",
        [
            ("_department", "string"),
            ("_projectName", "string"),
            ("_projectType", "string"),
            ("_budgetAllocated", "uint256"),
            ("_amountSpent", "uint256"),
            ("_location", "string"),
            ("_description", "string"),
        ],
        [],
        mutability="nonpayable",
    ),
]


CITIZEN_FEEDBACK_ABI = [
    _fn("feedbackCount", [], _out(("", "uint256"))),
    _fn("getTransactionFeedbacks", [("_transactionId", "uint256")], _out(("", "uint256[]"))),
    _fn("getFeedback", [("_feedbackId", "uint256")], [FEEDBACK_TUPLE]),
    _fn(
        "getTransactionRating",
        [("_transactionId", "uint256")],
        _out(("averageRating", "uint256"), ("totalFeedbacks", "uint256")),
    ),
    _fn(
        "submitFeedback",
        [("_transactionId", "uint256"), ("_comment", "string"), ("_rating", "uint8")],
        [],
        mutability="nonpayable",
    ),
]
