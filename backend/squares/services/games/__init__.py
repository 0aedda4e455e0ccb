"""Squares pool domain services: codes, payouts, pending picks, claims,
game lifecycle and the player registry.

Routes and socket handlers import from here, keeping transport concerns
separated from the game rules and the storage invariants.
"""
