"""User menu integration for the credits pages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .service import CreditConversionService

# Entry added by the host's own credits feature; our page replaces it.
REPLACED_MENU_ID = "credits"


@dataclass(frozen=True)
class MenuEntry:
    id: str
    label: str
    path: str
    order: int = 0


CREDITS_MENU_ENTRY = MenuEntry(id="dollar-credits", label="Credits", path="/credits", order=900)

DEFAULT_USER_MENU = (
    MenuEntry(id="dashboard", label="Dashboard", path="/", order=100),
    MenuEntry(id="credits", label="Credits", path="/credits/history", order=800),
    MenuEntry(id="profile", label="Profile", path="/profile", order=1000),
)


def build_user_menu(entries: Iterable[MenuEntry], service: CreditConversionService) -> List[MenuEntry]:
    """Return the member menu with the dollar credits page registered."""

    menu = list(entries)
    if not service.is_configured():
        return menu

    menu = [entry for entry in menu if entry.id not in {REPLACED_MENU_ID, CREDITS_MENU_ENTRY.id}]
    menu.append(CREDITS_MENU_ENTRY)
    return sorted(menu, key=lambda entry: entry.order)
