"""
Horloge injectable - toutes les bornes de cycle passent par ici
"""

from datetime import datetime, date, timedelta


class SystemClock:
    """Heure locale du serveur"""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FrozenClock(SystemClock):
    """
    Horloge figée, pour les tests et les exécutions "pour une date donnée".

    advance() fait avancer le temps à la main.
    """

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


system_clock = SystemClock()


def get_clock() -> SystemClock:
    """Dépendance horloge"""
    return system_clock
