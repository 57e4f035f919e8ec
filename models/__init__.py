from models.authUser import AuthUser
from models.profile import Profile, ProfileStatusEnum, BillingCycleEnum, ROLE_CREATOR, ROLE_AFFILIATE, ROLE_SUPER_ADMIN
from models.partnership import Partnership, PartnershipStatusEnum
from models.product import Product
from models.payout import Payout, PayoutStatusEnum
from models.sale import Sale, SaleStatusEnum
from models.payment import Payment
from models.communication import Communication, RecipientsEnum
from models.userSettings import UserSettings
from models.platformSettings import PlatformSettings
from models.resource import Resource, ResourceTypeEnum
from models.affiliateClicks import AffiliateClicks
