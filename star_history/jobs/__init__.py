"""Run outputs"""
