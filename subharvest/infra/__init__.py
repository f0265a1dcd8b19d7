"""Infra layer utilities (persistent storage)."""

from .storage import StoreAdapter, SubscriptionStore

__all__ = ["StoreAdapter", "SubscriptionStore"]
