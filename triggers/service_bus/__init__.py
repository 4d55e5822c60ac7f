# ============================================================================
# SERVICE BUS HANDLERS MODULE
# ============================================================================
# STATUS: Trigger layer - Service Bus message handling
# PURPOSE: Handlers for Service Bus queue triggers
# ============================================================================
"""
Service Bus Handlers Module.

Exports:
    handle_ingest_message: Ingest queue handler
"""

from .ingest_handler import handle_ingest_message

__all__ = ['handle_ingest_message']
