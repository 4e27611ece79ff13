from __future__ import annotations

# Candidate pipeline
CANDIDATE_STATUS_OFFER_PENDING = "OFFER_PENDING"
CANDIDATE_STATUS_OFFER_SENT = "OFFER_SENT"
CANDIDATE_STATUS_OFFER_VIEWED = "OFFER_VIEWED"
CANDIDATE_STATUS_OFFER_SIGNED = "OFFER_SIGNED"
CANDIDATE_STATUS_JOINING_PENDING = "JOINING_PENDING"
CANDIDATE_STATUS_JOINED = "JOINED"
CANDIDATE_STATUS_ONBOARDING = "ONBOARDING"
CANDIDATE_STATUS_COMPLETED = "COMPLETED"
CANDIDATE_STATUS_WITHDRAWN = "WITHDRAWN"
CANDIDATE_STATUS_REJECTED = "REJECTED"

CANDIDATE_STATUS_VALUES = (
    CANDIDATE_STATUS_OFFER_PENDING,
    CANDIDATE_STATUS_OFFER_SENT,
    CANDIDATE_STATUS_OFFER_VIEWED,
    CANDIDATE_STATUS_OFFER_SIGNED,
    CANDIDATE_STATUS_JOINING_PENDING,
    CANDIDATE_STATUS_JOINED,
    CANDIDATE_STATUS_ONBOARDING,
    CANDIDATE_STATUS_COMPLETED,
    CANDIDATE_STATUS_WITHDRAWN,
    CANDIDATE_STATUS_REJECTED,
)
PIPELINE_STATUS_VALUES = CANDIDATE_STATUS_VALUES[:8]
INACTIVE_CANDIDATE_STATUSES = (
    CANDIDATE_STATUS_WITHDRAWN,
    CANDIDATE_STATUS_REJECTED,
    CANDIDATE_STATUS_COMPLETED,
)

# Department step kinds
STEP_OFFER_LETTER = "OFFER_LETTER"
STEP_OFFER_REMINDER = "OFFER_REMINDER"
STEP_WELCOME_EMAIL = "WELCOME_EMAIL"
STEP_HR_INDUCTION = "HR_INDUCTION"
STEP_WHATSAPP_ADDITION = "WHATSAPP_ADDITION"
STEP_ONBOARDING_FORM = "ONBOARDING_FORM"
STEP_FORM_REMINDER = "FORM_REMINDER"
STEP_CEO_INDUCTION = "CEO_INDUCTION"
STEP_SALES_INDUCTION = "SALES_INDUCTION"
STEP_DEPARTMENT_INDUCTION = "DEPARTMENT_INDUCTION"
STEP_TRAINING_PLAN = "TRAINING_PLAN"
STEP_CHECKIN_CALL = "CHECKIN_CALL"
STEP_MANUAL = "MANUAL"

STEP_TYPE_VALUES = (
    STEP_OFFER_LETTER,
    STEP_OFFER_REMINDER,
    STEP_WELCOME_EMAIL,
    STEP_HR_INDUCTION,
    STEP_WHATSAPP_ADDITION,
    STEP_ONBOARDING_FORM,
    STEP_FORM_REMINDER,
    STEP_CEO_INDUCTION,
    STEP_SALES_INDUCTION,
    STEP_DEPARTMENT_INDUCTION,
    STEP_TRAINING_PLAN,
    STEP_CHECKIN_CALL,
    STEP_MANUAL,
)

SCHEDULING_DOJ = "doj"
SCHEDULING_OFFER_LETTER = "offer_letter"
SCHEDULING_MANUAL = "manual"
SCHEDULING_METHOD_VALUES = (SCHEDULING_DOJ, SCHEDULING_OFFER_LETTER, SCHEDULING_MANUAL)

PRIORITY_LOW = "LOW"
PRIORITY_MEDIUM = "MEDIUM"
PRIORITY_HIGH = "HIGH"
PRIORITY_VALUES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

# Calendar events
EVENT_TYPE_WHATSAPP_TASK = "WHATSAPP_TASK"
EVENT_TYPE_TRAINING = "TRAINING"
EVENT_TYPE_CUSTOM = "CUSTOM"
EVENT_TYPE_VALUES = (
    STEP_OFFER_LETTER,
    STEP_OFFER_REMINDER,
    STEP_WELCOME_EMAIL,
    STEP_HR_INDUCTION,
    EVENT_TYPE_WHATSAPP_TASK,
    STEP_ONBOARDING_FORM,
    STEP_FORM_REMINDER,
    STEP_CEO_INDUCTION,
    STEP_SALES_INDUCTION,
    STEP_DEPARTMENT_INDUCTION,
    STEP_TRAINING_PLAN,
    STEP_CHECKIN_CALL,
    EVENT_TYPE_TRAINING,
    EVENT_TYPE_CUSTOM,
)

EVENT_STATUS_SCHEDULED = "SCHEDULED"
EVENT_STATUS_COMPLETED = "COMPLETED"
EVENT_STATUS_CANCELLED = "CANCELLED"
EVENT_STATUS_RESCHEDULED = "RESCHEDULED"
EVENT_STATUS_VALUES = (
    EVENT_STATUS_SCHEDULED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_RESCHEDULED,
)
OPEN_EVENT_STATUSES = (EVENT_STATUS_SCHEDULED, EVENT_STATUS_RESCHEDULED)

# Email templates and outbound emails
EMAIL_TYPE_OFFER_LETTER = "OFFER_LETTER"
EMAIL_TYPE_OFFER_REMINDER = "OFFER_REMINDER"
EMAIL_TYPE_WELCOME_DAY_MINUS_1 = "WELCOME_DAY_MINUS_1"
EMAIL_TYPE_ONBOARDING_FORM = "ONBOARDING_FORM"
EMAIL_TYPE_FORM_REMINDER = "FORM_REMINDER"
EMAIL_TYPE_TRAINING_PLAN = "TRAINING_PLAN"
EMAIL_TYPE_HR_INDUCTION = "HR_INDUCTION"
EMAIL_TYPE_CEO_INDUCTION = "CEO_INDUCTION"
EMAIL_TYPE_SALES_INDUCTION = "SALES_INDUCTION"
EMAIL_TYPE_CHECKIN_CALL = "CHECKIN_CALL"
EMAIL_TYPE_WHATSAPP_GROUPS = "WHATSAPP_GROUPS"
EMAIL_TYPE_CUSTOM = "CUSTOM"
EMAIL_TYPE_VALUES = (
    EMAIL_TYPE_OFFER_LETTER,
    EMAIL_TYPE_OFFER_REMINDER,
    EMAIL_TYPE_WELCOME_DAY_MINUS_1,
    EMAIL_TYPE_ONBOARDING_FORM,
    EMAIL_TYPE_FORM_REMINDER,
    EMAIL_TYPE_TRAINING_PLAN,
    EMAIL_TYPE_HR_INDUCTION,
    EMAIL_TYPE_CEO_INDUCTION,
    EMAIL_TYPE_SALES_INDUCTION,
    EMAIL_TYPE_CHECKIN_CALL,
    EMAIL_TYPE_WHATSAPP_GROUPS,
    EMAIL_TYPE_CUSTOM,
)

EMAIL_STATUS_PENDING = "PENDING"
EMAIL_STATUS_SENT = "SENT"
EMAIL_STATUS_FAILED = "FAILED"
EMAIL_STATUS_SKIPPED = "SKIPPED"
EMAIL_STATUS_CANCELLED = "CANCELLED"
EMAIL_STATUS_VALUES = (
    EMAIL_STATUS_PENDING,
    EMAIL_STATUS_SENT,
    EMAIL_STATUS_FAILED,
    EMAIL_STATUS_SKIPPED,
    EMAIL_STATUS_CANCELLED,
)

# Which email template type a step links to by default.
STEP_EMAIL_TYPE = {
    STEP_OFFER_LETTER: EMAIL_TYPE_OFFER_LETTER,
    STEP_OFFER_REMINDER: EMAIL_TYPE_OFFER_REMINDER,
    STEP_WELCOME_EMAIL: EMAIL_TYPE_WELCOME_DAY_MINUS_1,
    STEP_HR_INDUCTION: EMAIL_TYPE_HR_INDUCTION,
    STEP_WHATSAPP_ADDITION: EMAIL_TYPE_WHATSAPP_GROUPS,
    STEP_ONBOARDING_FORM: EMAIL_TYPE_ONBOARDING_FORM,
    STEP_FORM_REMINDER: EMAIL_TYPE_FORM_REMINDER,
    STEP_CEO_INDUCTION: EMAIL_TYPE_CEO_INDUCTION,
    STEP_SALES_INDUCTION: EMAIL_TYPE_SALES_INDUCTION,
    STEP_TRAINING_PLAN: EMAIL_TYPE_TRAINING_PLAN,
    STEP_CHECKIN_CALL: EMAIL_TYPE_CHECKIN_CALL,
}

# Tasks
TASK_STATUS_PENDING = "PENDING"
TASK_STATUS_COMPLETED = "COMPLETED"
TASK_STATUS_SNOOZED = "SNOOZED"
TASK_STATUS_SKIPPED = "SKIPPED"
TASK_STATUS_VALUES = (
    TASK_STATUS_PENDING,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_SNOOZED,
    TASK_STATUS_SKIPPED,
)
