from ..models.family import Family, PlanTier, SubscriptionStatus, BillingInterval
from ..models.child import Child
from ..models.chore import Chore, ChoreStatus, ChoreAssignment
from ..models.reward import Reward, RewardType, RewardAssignment, PendingReward
from ..models.content import GoodCause, BlogPost, Review, PublishStatus
from ..models.auth import FamilySession
from ..db.base_class import Base
