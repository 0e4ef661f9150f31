"""Gemini prompt management and calls"""
