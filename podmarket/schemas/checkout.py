# -*- coding: utf-8 -*-
"""
Checkout command schemas.

Only identifiers are accepted from the client. Price, currency and the
purchasing user always come from server-side state.
"""
from pydantic import BaseModel, ConfigDict, Field


class CreatePaymentIntentCommand(BaseModel):
    """Phase 1: ask the processor for an intent for one podcast."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    podcast_id: str = Field(..., min_length=1, max_length=36,
                            description="Podcast to purchase")


class ConfirmPurchaseCommand(BaseModel):
    """Phase 2: record the purchase after the processor reports success."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    podcast_id: str = Field(..., min_length=1, max_length=36,
                            description="Podcast that was paid for")
    payment_intent_id: str = Field(..., min_length=1, max_length=255,
                                   description="Processor payment reference")
