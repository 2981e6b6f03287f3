"""
Autopilot Tenant Move

Moves a Windows device between Intune tenants: stages the target tenant's
Autopilot configuration, removes the device's managed-device and Autopilot
registration records from the source tenant through Microsoft Graph, scrubs
the client secret from the Intune Management Extension log and triggers an
MDM remote wipe.
"""

__version__ = "1.0.0"
