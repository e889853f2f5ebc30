"""Payment domain - payment gate and checkout gateway"""
