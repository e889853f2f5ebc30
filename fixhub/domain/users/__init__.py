"""User domain - accounts, credentials and profiles"""
