# Import all models here for easier access
from app.models.user import User, UserTypeEnum
from app.models.escort import Escort
from app.models.agency import Agency
from app.models.agency_membership import AgencyMembership, MembershipStatusEnum, MembershipRoleEnum
from app.models.agency_invitation import AgencyInvitation, InvitationStatusEnum
from app.models.escort_verification import EscortVerification, VerificationStatusEnum
from app.models.verification_pricing import VerificationPricing
from app.models.notification import Notification, NotificationTypeEnum, NotificationPriorityEnum
from app.models.user_reputation import UserReputation
from app.models.admin import Admin, AdminRoleEnum, Ban, BanSeverityEnum, Report, ReportStatusEnum
