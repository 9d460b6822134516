STORAGE_KEYS = {
    "members": "buildingMembers",
    "payments": "paymentHistory",
    "expenses": "buildingExpenses",
    "last_update": "lastMonthlyUpdate",
    "feedback": "communityFeedback",
    "admin_credentials": "adminCredentials",
    "receipts": "paymentReceipts",
    "advance_payments": "advancePayments",
    "due_changes": "dueChangeHistory",
    "audit_log": "auditLog",
    "reset_log": "systemResetLog",
}

DEFAULT_ADMIN_CREDENTIALS = {
    "username": "admin",
    "password": "admin123",
}

MIN_ADMIN_PASSWORD_LENGTH = 6

ROLE_CAPABILITIES = {
    "admin": {
        "members:write",
        "payments:write",
        "dues:write",
        "advance:write",
        "expenses:write",
        "receipts:upload",
        "receipts:review",
        "feedback:write",
        "feedback:vote",
        "feedback:moderate",
        "reports:read",
        "audit:read",
        "system:admin",
    },
    "member": {
        "receipts:upload",
        "feedback:write",
        "feedback:vote",
    },
}

REJECTION_REASONS = [
    "Unclear image",
    "Amount mismatch",
    "Wrong payment details",
    "Duplicate receipt",
    "Invalid payment proof",
    "Other (specify in notes)",
]
REJECTION_REASON_OTHER = REJECTION_REASONS[-1]

RECEIPT_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/heic"}
EXPENSE_IMAGE_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

COLLECTION_SERIES_MONTHS = 6
