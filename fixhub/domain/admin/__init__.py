"""Admin domain - account moderation and mediation"""
