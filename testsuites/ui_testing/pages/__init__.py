"""
================================================================================
Page Objects
================================================================================

Page Object Model implementations for the portal screens.

Each page class encapsulates:
    - Element locators
    - Page-specific actions
    - Verification methods

Grid screens (the Portal Approval sections and Followup Referrals) share
GridPage.

Author: Automation Team
License: MIT
================================================================================
"""

from .login_page import LoginPage
from .dashboard_page import DashboardPage
from .client_contacts_page import ClientContactsPage
from .patient_referral_page import PatientReferralPage
from .portal_requests_page import PortalRequestsPage
from .probation_portal_page import ProbationPortalPage
from .followup_referrals_page import FollowupReferralsPage
from .scheduling_page import SchedulingPage
from .recurring_appointments_page import RecurringAppointmentsPage

__all__ = [
    "LoginPage",
    "DashboardPage",
    "ClientContactsPage",
    "PatientReferralPage",
    "PortalRequestsPage",
    "ProbationPortalPage",
    "FollowupReferralsPage",
    "SchedulingPage",
    "RecurringAppointmentsPage",
]
