"""Game domain services: answer scoring, winner selection and prize payout.

Routes import from here; nothing in this package knows about HTTP. The
distribution flow reaches the chain only through ``hoot.services.chain``.
"""
