"""Service domain - service requests and their lifecycle"""
