from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    EMAIL_TYPE_CEO_INDUCTION,
    EMAIL_TYPE_CHECKIN_CALL,
    EMAIL_TYPE_CUSTOM,
    EMAIL_TYPE_FORM_REMINDER,
    EMAIL_TYPE_HR_INDUCTION,
    EMAIL_TYPE_OFFER_LETTER,
    EMAIL_TYPE_OFFER_REMINDER,
    EMAIL_TYPE_ONBOARDING_FORM,
    EMAIL_TYPE_SALES_INDUCTION,
    EMAIL_TYPE_TRAINING_PLAN,
    EMAIL_TYPE_WELCOME_DAY_MINUS_1,
    EMAIL_TYPE_WHATSAPP_GROUPS,
)
from hr_onboarding.db.session import SessionLocal
from hr_onboarding.models.email_template import EmailTemplate
from hr_onboarding.services.placeholders import extract_placeholders
from hr_onboarding.services.user_service import ensure_admin_user

_SIGNOFF = "\n\nRegards,\n{{hrName}}\n{{companyName}}"

DEFAULT_TEMPLATES = [
    (EMAIL_TYPE_OFFER_LETTER, "Offer Letter", "Offer of employment - {{position}} at {{companyName}}",
     "Dear {{firstName}},\n\nPlease find attached your offer letter for the role of {{position}} in {{department}}. "
     "Your expected joining date is {{joiningDate}}."),
    (EMAIL_TYPE_OFFER_REMINDER, "Offer Reminder", "Reminder: your offer from {{companyName}}",
     "Dear {{firstName}},\n\nThis is a gentle reminder to review and sign your offer letter."),
    (EMAIL_TYPE_WELCOME_DAY_MINUS_1, "Welcome (Day -1)", "Welcome to {{companyName}}, see you tomorrow",
     "Dear {{firstName}},\n\nWe are excited to have you join us on {{joiningDate}}. "
     "Your reporting manager will be {{reportingManager}}."),
    (EMAIL_TYPE_HR_INDUCTION, "HR Induction", "HR Induction - {{joiningDate}}",
     "Dear {{firstName}},\n\nYour HR induction is scheduled on your joining day. Meeting link: {{meetingLink}}"),
    (EMAIL_TYPE_WHATSAPP_GROUPS, "WhatsApp Groups", "Join the {{companyName}} WhatsApp groups",
     "Dear {{firstName}},\n\nPlease join the team WhatsApp groups shared by HR."),
    (EMAIL_TYPE_ONBOARDING_FORM, "Onboarding Form", "Complete your onboarding form",
     "Dear {{firstName}},\n\nPlease complete your onboarding form: {{formLink}}"),
    (EMAIL_TYPE_FORM_REMINDER, "Onboarding Form Reminder", "Reminder: onboarding form pending",
     "Dear {{firstName}},\n\nYour onboarding form is still pending: {{formLink}}"),
    (EMAIL_TYPE_CEO_INDUCTION, "CEO Induction", "CEO Induction - {{companyName}}",
     "Dear {{firstName}},\n\nYou are invited to an induction session with our CEO. Meeting link: {{meetingLink}}"),
    (EMAIL_TYPE_SALES_INDUCTION, "Sales Induction", "Sales Induction - {{companyName}}",
     "Dear {{firstName}},\n\nYour sales induction is scheduled. Meeting link: {{meetingLink}}"),
    (EMAIL_TYPE_TRAINING_PLAN, "Training Plan", "Your training plan at {{companyName}}",
     "Dear {{firstName}},\n\nPlease find your training plan for the coming weeks."),
    (EMAIL_TYPE_CHECKIN_CALL, "HR Check-in Call", "HR check-in call - week one",
     "Dear {{firstName}},\n\nLet us catch up on how your first week went. Meeting link: {{meetingLink}}"),
    (EMAIL_TYPE_CUSTOM, "Department Induction", "{{department}} Induction - {{companyName}}",
     "Dear {{firstName}},\n\nYour {{department}} induction is scheduled. Meeting link: {{meetingLink}}"),
]


async def ensure_default_templates(session: AsyncSession) -> int:
    existing = set((await session.execute(select(EmailTemplate.name))).scalars().all())
    created = 0
    for email_type, name, subject, body in DEFAULT_TEMPLATES:
        if name in existing:
            continue
        body = body + _SIGNOFF
        session.add(
            EmailTemplate(
                name=name,
                type=email_type,
                custom_email_type="DEPARTMENT_INDUCTION" if email_type == EMAIL_TYPE_CUSTOM else None,
                subject=subject,
                body=body,
                placeholders=extract_placeholders(subject, body),
                is_active=True,
            )
        )
        created += 1
    await session.commit()
    return created


async def _run(email: str, full_name: str | None, with_templates: bool) -> None:
    async with SessionLocal() as session:
        changed = await ensure_admin_user(session, email, full_name=full_name)
        print(f"Admin {'ensured' if changed else 'already present'} for {email}.")
        if with_templates:
            created = await ensure_default_templates(session)
            print(f"Default email templates created: {created}.")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default=None)
    parser.add_argument("--templates", action="store_true", help="also create the default email templates")
    args = parser.parse_args()
    asyncio.run(_run(args.email.strip().lower(), args.name, args.templates))


if __name__ == "__main__":
    main()
