"""
Referral services package.

Contains modular services for referral processing:
- config: Rate and tier-depth tables (ReferralProgramConfig)
- code_generator: Referral code generation
- code_service: Referral code lifecycle (active → verified/used/invalid)
- tier_policy: Tier → max chain depth
- chain_walker: Referral chain reconstruction
- commission_calculator: Commission ledger writes per purchase
- statistics: Referral and commission statistics
- notifications: Notification hook interface and dispatch
"""

from refchain.services.referral.chain_walker import (
    ChainLink,
    ChainWalker,
    ReferralChain,
)
from refchain.services.referral.code_generator import ReferralCodeGenerator
from refchain.services.referral.code_service import (
    CodeTransition,
    ReferralCodeService,
)
from refchain.services.referral.commission_calculator import (
    CommissionCalculator,
    CommissionResult,
    CommissionStage,
)
from refchain.services.referral.config import ReferralProgramConfig
from refchain.services.referral.notifications import (
    LoggingNotificationHook,
    NotificationHook,
    ReferralNotifier,
)
from refchain.services.referral.statistics import (
    CommissionStats,
    LayerStats,
    ReferralStatisticsManager,
    ReferralStats,
)
from refchain.services.referral.tier_policy import TierPolicy


__all__ = [
    # Configuration
    "ReferralProgramConfig",
    # Codes
    "ReferralCodeGenerator",
    "ReferralCodeService",
    "CodeTransition",
    # Chain and commissions
    "ChainLink",
    "ChainWalker",
    "ReferralChain",
    "TierPolicy",
    "CommissionCalculator",
    "CommissionResult",
    "CommissionStage",
    # Statistics
    "ReferralStatisticsManager",
    "ReferralStats",
    "CommissionStats",
    "LayerStats",
    # Notifications
    "NotificationHook",
    "LoggingNotificationHook",
    "ReferralNotifier",
]
