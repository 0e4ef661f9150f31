"""councilvote HTTP API"""
