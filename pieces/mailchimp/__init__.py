"""Mailchimp piece — audience webhook triggers."""

from pieces.mailchimp.triggers import mailchimp_subscribe

TRIGGERS = [mailchimp_subscribe]
