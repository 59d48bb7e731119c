"""
Job alert matching.

Every alert is a three-way AND over location, job type and keywords; an
empty filter (or "All") matches anything. Matching scans all alerts for
each published job, which is fine at the current size. Indexing alerts
by job type and location is the next step if that stops being true.
"""
import logging
from typing import Optional

from jobboard.models.job import Job
from jobboard.models.job_alert import JobAlert, ALERT_WILDCARD
from jobboard.services.notifier import NotificationIntent, Notifier
from jobboard.services.stores import AlertStore

logger = logging.getLogger(__name__)


def _is_wildcard(value: Optional[str]) -> bool:
    return not value or not value.strip() or value.strip().lower() == ALERT_WILDCARD.lower()


def _normalize_job_type(value: Optional[str]) -> str:
    return (value or "").strip().lower().replace("_", "-").replace(" ", "-")


def location_matches(alert: JobAlert, job: Job) -> bool:
    if _is_wildcard(alert.location):
        return True
    return alert.location.strip().lower() in (job.location or "").lower()


def job_type_matches(alert: JobAlert, job: Job) -> bool:
    if _is_wildcard(alert.job_type):
        return True
    return _normalize_job_type(alert.job_type) == _normalize_job_type(job.job_type)


def keyword_matches(alert: JobAlert, job: Job) -> bool:
    if not alert.keywords or not alert.keywords.strip():
        return True
    keywords = alert.keywords.strip().lower()
    return keywords in (job.title or "").lower() or keywords in (job.description or "").lower()


def alert_matches(alert: JobAlert, job: Job) -> bool:
    """True when the job satisfies every filter on the alert."""
    return location_matches(alert, job) and job_type_matches(alert, job) and keyword_matches(alert, job)


class AlertMatcher:
    """Matches newly published jobs against stored alerts and notifies subscribers."""

    def __init__(self, alerts: AlertStore, notifier: Notifier):
        self.alerts = alerts
        self.notifier = notifier

    async def match_and_notify(self, job: Job) -> list[NotificationIntent]:
        """
        Notify the owner of every alert the job matches.
        
        A failing delivery is logged and does not stop the remaining ones.
        
        Returns:
            The notification intents that were emitted
        """
        alerts = await self.alerts.list_all()
        intents = []
        
        for alert in alerts:
            if not alert_matches(alert, job):
                continue
            intent = NotificationIntent(
                alert_id=alert.id,
                user_id=alert.user_id,
                job_id=job.id,
                job_title=job.title,
            )
            try:
                await self.notifier.notify(intent)
            except Exception as e:
                logger.error(f"Failed to notify user {alert.user_id} for alert {alert.id}: {e}", exc_info=True)
                continue
            intents.append(intent)
        
        logger.info(f"Job {job.id} matched {len(intents)} of {len(alerts)} alerts")
        return intents

    async def notify_safely(self, job: Job) -> list[NotificationIntent]:
        """match_and_notify for callers that must not fail because of alerts."""
        try:
            return await self.match_and_notify(job)
        except Exception as e:
            logger.error(f"Error processing alerts for job {job.id}: {e}", exc_info=True)
            return []
