"""Quote domain - quote negotiation"""
