"""
pieces — trigger connectors for external SaaS services.

Provides a small trigger framework that handles:
  • Declarative trigger metadata + pydantic props models
  • Polling and webhook lifecycles (on_enable / on_disable / run)
  • Per-instance key/value stores (in-memory or database-backed)
  • Bearer-token REST calls to the vendor APIs

Each vendor (Airtable, Mailchimp, …) lives in its own sub-package and
subclasses BaseTrigger.
"""
