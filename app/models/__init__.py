from .profile import Profile
from .cycle import Cycle, CycleStatus
from .goal import Goal
from .tactic import Tactic, TacticStatus
from .daily_action import DailyAction
from .momentum_credit import MomentumCredit
from .weekly_score import WeeklyScore

__all__ = [
    "Profile",
    "Cycle",
    "CycleStatus",
    "Goal",
    "Tactic",
    "TacticStatus",
    "DailyAction",
    "MomentumCredit",
    "WeeklyScore",
]
