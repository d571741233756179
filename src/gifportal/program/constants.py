# src/gifportal/program/constants.py
from __future__ import annotations

"""Names and fixed identities of the GIF program interface."""

# The runtime's account-creation program: 32 zero bytes.
SYSTEM_PROGRAM_ID: str = "00" * 32

# Instructions
INITIALIZE_IX: str = "startStuffOff"
APPEND_IX: str = "addGif"

# Account roles
ROLE_BASE_ACCOUNT: str = "baseAccount"
ROLE_USER: str = "user"
ROLE_SYSTEM_PROGRAM: str = "systemProgram"

# Args
ARG_GIF_LINK: str = "gifLink"

# Stored record
BASE_ACCOUNT_TYPE: str = "BaseAccount"
FIELD_TOTAL_GIFS: str = "totalGifs"
FIELD_GIF_LIST: str = "gifList"
FIELD_ITEM_LINK: str = "gifLink"
FIELD_ITEM_USER: str = "userAddress"
