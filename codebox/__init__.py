"""
codebox - run untrusted code in locked-down Docker sandboxes over HTTP.
"""

__version__ = "0.1.0"
