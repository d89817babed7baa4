"""
LogFluent Insight
=================

Upload a text log, get an AI-generated summary, then chat about it.
"""

__version__ = "0.1.0"
