"""Contractor domain - contractor-facing endpoints"""
