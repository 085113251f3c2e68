"""
🌲 IronPaw Foreman
------------------
Website chat intake for forestry mulching estimates: walks a landowner
through a fixed question flow, persists answers to Airtable, and closes with
a lead record and a model-phrased reply.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
