from hr_onboarding.db.base import Base
from hr_onboarding.models.activity import ActivityLog
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.email import Email
from hr_onboarding.models.email_template import EmailTemplate
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.models.setting import AppSetting, CustomPlaceholder
from hr_onboarding.models.task import Task
from hr_onboarding.models.user import HrUser

__all__ = [
    "Base",
    "ActivityLog",
    "AppSetting",
    "Candidate",
    "CustomPlaceholder",
    "DepartmentStepTemplate",
    "Email",
    "EmailTemplate",
    "HrUser",
    "ScheduledEvent",
    "Task",
]
