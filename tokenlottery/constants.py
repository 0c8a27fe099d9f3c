"""
Public naming rules for lottery tickets and their collection.

Ticket labels are compared verbatim during settlement, so changing
``TICKET_NAME_PREFIX`` invalidates every ticket already minted.
"""

DEFAULT_LOTTERY_SEED = "token_lottery"

# Collection metadata
COLLECTION_NAME = "Token Lottery Collection"
COLLECTION_SYMBOL = "TLC"
COLLECTION_URI = "https://example.com/token-lottery/collection.json"

# Ticket metadata; the sequence number is appended to the prefix
TICKET_NAME_PREFIX = "Token Lottery Ticket #"
TICKET_SYMBOL = "TLT"
TICKET_URI = "https://example.com/token-lottery/ticket.json"
