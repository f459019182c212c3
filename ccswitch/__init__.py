"""
ccswitch - Automatic Channel Switching for Chat Completions

Routes a chat-completion request across multiple interchangeable API
endpoints ("channels") and fails over to the next viable channel when one
is unavailable, rate-limited or erroring.
"""

__version__ = "0.1.0"
__author__ = "ccswitch"
