"""Airtable piece — polling triggers over a base/table."""

from pieces.airtable.triggers import airtable_new_record, airtable_updated_record

TRIGGERS = [airtable_new_record, airtable_updated_record]
