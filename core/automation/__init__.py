"""
Automation engine: recurring course triggers, reminder timers and the
simulation-aware gateways they drive.

Public API:
    AutomationScheduler - owns triggers and reminder timers (core.automation.scheduler)
    errors - ConfigurationError, ExternalGatewayError, DuplicateResourceError,
             SchedulerRaceError (core.automation.errors)
"""
