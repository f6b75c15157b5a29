"""Booking engine services"""
