from .base import Base
from .user import User, UserRole, UserStatus, BankAccount
from .trip import Trip, Booking, CommissionType, BookingStatus, BookingPaymentStatus
from .coins import SellerCoinBalance, CoinTransaction, CoinType, TransactionType, SourceType, CoinEarningRule, EarningRuleType
from .commission import CommissionPayment, CommissionStatus
from .campaigns import (
    GamificationCampaign,
    SellerCampaignProgress,
    CoinBonusCampaign,
    Condition2Action,
    BonusCampaignType,
)
from .redemption import CoinRedemption, RedemptionStatus
from .audit import AuditLog
