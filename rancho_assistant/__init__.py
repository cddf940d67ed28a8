"""
Rancho Cordova municipal assistant
Routes resident questions to vector search, SQL analytics or ticket lookup
and answers them with a hosted LLM
"""

__version__ = "1.0.0"
