"""Event source crawlers"""
