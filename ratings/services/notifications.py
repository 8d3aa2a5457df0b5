"""
Notifications — Slack webhook integration for scoring run events.

Notification failure never blocks or fails a run.
"""
import logging
import requests

from ratings.config import SLACK_WEBHOOK_URL, PROFILE_SLUGS

logger = logging.getLogger('services.notifications')


def notify_run_complete(run_id, options, items_scored):
    """Post run completion summary to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"Scoring Run #{run_id} Completed",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Label:* {options.run_label}"},
                    {"type": "mrkdwn", "text": f"*Formula:* {options.formula_version}"},
                    {"type": "mrkdwn", "text": f"*Flashlights:* {items_scored}"},
                    {"type": "mrkdwn", "text": f"*Scores:* {items_scored * len(PROFILE_SLUGS)}"},
                    {"type": "mrkdwn", "text": f"*Initiated by:* {options.initiated_by}"},
                ]
            },
        ]

        requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        logger.info("Run %s completion notification sent", run_id)

    except Exception:
        logger.error("Failed to send notification for run %s", run_id, exc_info=True)


def notify_run_failed(run_id, options, error):
    """Post run failure alert to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"Scoring Run #{run_id} FAILED",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Label:* {options.run_label}"},
                    {"type": "mrkdwn", "text": f"*Formula:* {options.formula_version}"},
                ]
            },
        ]

        if error:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Error:* ```{error[:500]}```"}
            })

        requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        logger.info("Run %s failure notification sent", run_id)

    except Exception:
        logger.error("Failed to send failure notification for run %s", run_id, exc_info=True)
