"""
Bars application.

Holds the Bar record: a beach bar owned by a platform user and, once the
owner has onboarded, linked to a Stripe connected account that receives
the merchant share of split payments.
"""
