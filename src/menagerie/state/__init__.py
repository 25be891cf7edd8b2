"""Canonical state: data model, actions, reducer, store and selectors."""
