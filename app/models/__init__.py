# Database models
from .user import User, UserRole
from .donor import Donor, HealthStatus
from .blood_bank import BloodBank
from .recipient import Recipient, RecipientType
from .blood_inventory import BloodInventory
from .donation import Donation, DonationStatus
from .blood_request import BloodRequest, RequestStatus
from .activity_log import ActivityLog, ActivityType
