"""
Mailchimp webhook trigger — "Member subscribed to Audience".

Lifecycle: Disabled → Enabled → Disabled.
  • on_enable   registers a subscribe webhook and stores {id, listId}
  • on_disable  deletes that webhook, then clears the stored record
  • run         relays the delivered payload unchanged
"""

from __future__ import annotations

import logging
from typing import Any, List

from pieces.auth import get_access_token_or_throw
from pieces.base import BaseTrigger, TriggerContext, TriggerStrategy
from pieces.mailchimp.common import (
    MailchimpSubscribeProps,
    disable_webhook_request,
    enable_webhook_request,
    get_server_prefix,
)

logger = logging.getLogger(__name__)

WEBHOOK_DATA_STORE_KEY = "mail_chimp_webhook_data"


class MailchimpSubscribeTrigger(BaseTrigger[MailchimpSubscribeProps]):
    piece_name = "mailchimp"
    name = "subscribe"
    display_name = "Member subscribed to Audience"
    description = "Runs when an Audience subscriber is added."
    type = TriggerStrategy.WEBHOOK
    props_model = MailchimpSubscribeProps
    sample_data = {
        "type": "subscribe",
        "fired_at": "2009-03-26 21:35:57",
        "data": {
            "id": "8a25ff1d98",
            "list_id": "a6b5da1054",
            "email": "api@mailchimp.com",
            "email_type": "html",
            "ip_opt": "10.20.10.30",
            "ip_signup": "10.20.10.30",
            "merges": {
                "EMAIL": "api@mailchimp.com",
                "FNAME": "Mailchimp",
                "LNAME": "API",
                "INTERESTS": "Group1,Group2",
            },
        },
    }

    async def on_enable(self, context: TriggerContext[MailchimpSubscribeProps]) -> None:
        props = context.props_value
        access_token = get_access_token_or_throw(props.authentication)
        if not context.webhook_url:
            raise ValueError("Webhook trigger enabled without a webhook URL")

        server = await get_server_prefix(access_token)
        webhook_id = await enable_webhook_request(
            server=server,
            token=access_token,
            list_id=props.list_id,
            webhook_url=context.webhook_url,
        )

        await context.store.put(
            WEBHOOK_DATA_STORE_KEY,
            {"id": webhook_id, "listId": props.list_id},
        )
        logger.info("Registered Mailchimp webhook %s on list %s", webhook_id, props.list_id)

    async def on_disable(self, context: TriggerContext[MailchimpSubscribeProps]) -> None:
        webhook_data = await context.store.get(WEBHOOK_DATA_STORE_KEY)
        if webhook_data is None:
            return

        token = get_access_token_or_throw(context.props_value.authentication)
        server = await get_server_prefix(token)
        await disable_webhook_request(
            server=server,
            token=token,
            list_id=webhook_data["listId"],
            webhook_id=webhook_data["id"],
        )

        await context.store.put(WEBHOOK_DATA_STORE_KEY, None)
        logger.info("Removed Mailchimp webhook %s from list %s", webhook_data["id"], webhook_data["listId"])

    async def run(self, context: TriggerContext[MailchimpSubscribeProps]) -> List[Any]:
        if context.payload is None:
            return []
        return [context.payload]


mailchimp_subscribe = MailchimpSubscribeTrigger()
