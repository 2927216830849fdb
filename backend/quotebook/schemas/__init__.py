"""
Quotebook Backend — Schemas Package
===================================

What:  Pydantic models for backend records (quote.py), auth and session state
       (auth.py), presentation preferences (preferences.py) and the shared API
       envelopes (api.py). Reusable field types live in common.py.
"""
