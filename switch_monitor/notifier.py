# -*- coding: utf-8 -*-
"""Slack notifications"""

import logging

import requests

from .errors import NotificationError

logger = logging.getLogger(__name__)

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackNotifier:
    """
    Posts messages to one Slack channel.
    Delivery is attempted once; failures are logged and never raised.
    """

    def __init__(self, token, channel, api_url=SLACK_POST_MESSAGE_URL, timeout=5, session=None):
        self.token = token
        self.channel = channel
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def post_message(self, text):
        """Send text to the channel, raising NotificationError on failure"""
        try:
            response = self.session.post(
                self.api_url,
                json={"channel": self.channel, "text": text},
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Error sending Slack message: {e}") from e

        if response.status_code != 200:
            raise NotificationError(f"Slack responded with HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise NotificationError("Slack returned a non-JSON response") from e

        if not body.get("ok"):
            raise NotificationError(f"Slack rejected the message: {body.get('error', 'unknown error')}")

    def send(self, message):
        """Send a notification, returns True if Slack accepted it"""
        try:
            self.post_message(message)
        except NotificationError as e:
            logger.error(f"Failed to send Slack message: {e}")
            return False

        logger.info(f"✓ Notification sent: {message}")
        return True
