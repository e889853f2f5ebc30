"""FixHub API - property-service marketplace backend"""
