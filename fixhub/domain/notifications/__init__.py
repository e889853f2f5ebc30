"""Notification domain - in-app notifications"""
