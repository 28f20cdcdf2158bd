"""Symbolic identities for keyboard buttons.

The transport resolves button labels to these tags once, so handlers
never compare display strings.
"""

from enum import Enum, auto


class ActionTag(Enum):
    """Every button the bot shows in a reply keyboard."""

    # Main menu
    TEXT_CONFESSION = auto()
    VOICE_CONFESSION = auto()
    BLIND_CONNECTIONS = auto()
    CONTACT_ADMIN = auto()
    MY_STATS = auto()
    GUIDELINES = auto()
    RATE_US = auto()

    # Search and blind chat
    CANCEL_SEARCH = auto()
    MAIN_MENU = auto()
    END_CHAT = auto()
    REPORT_USER = auto()
    SEND_HEART = auto()
    SEND_SMILE = auto()
    SEND_VOICE = auto()
    SEND_PHOTO = auto()

    # Flow controls
    CANCEL = auto()
    GENDER_MALE = auto()
    GENDER_FEMALE = auto()
    YEAR_1 = auto()
    YEAR_2 = auto()
    YEAR_3 = auto()
    YEAR_4 = auto()
    YEAR_5_PLUS = auto()
    PREF_MALE = auto()
    PREF_FEMALE = auto()
    PREF_BOTH = auto()


YEAR_OF_STUDY_ACTIONS = {
    ActionTag.YEAR_1: "1st Year",
    ActionTag.YEAR_2: "2nd Year",
    ActionTag.YEAR_3: "3rd Year",
    ActionTag.YEAR_4: "4th Year",
    ActionTag.YEAR_5_PLUS: "5th+ Year",
}
