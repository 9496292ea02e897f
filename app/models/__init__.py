from datetime import datetime, timezone
def utcnow():
    return datetime.now(timezone.utc)
from .family import Family
from .child import Child
from .chore import Chore, ChoreAssignment
from .reward import Reward, RewardAssignment, PendingReward
from .content import GoodCause, BlogPost, Review
from .auth import FamilySession
