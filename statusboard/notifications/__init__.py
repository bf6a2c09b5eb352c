"""Outbound notifications: the Slack status board and its threaded alerts."""

from .slack import SlackBoard, SlackError
