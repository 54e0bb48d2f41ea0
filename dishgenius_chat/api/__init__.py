"""Canonical models, convention transforms, reply normalization, gateway and HTTP surface.

The FastAPI app lives in :mod:`.server`; import it directly so that importing
the models does not pull in the web framework.
"""
