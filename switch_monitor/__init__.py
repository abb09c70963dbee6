# -*- coding: utf-8 -*-
"""
Switch Monitor
Watches a switch on a digital input and relays every state change to Slack
"""

__version__ = "1.0.0"
