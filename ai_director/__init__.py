"""
AI Director - tool-call parsing, guarded dispatch, planning with
self-healing, and long-term project memory for an LLM agent.
"""

__version__ = "0.1.0"
