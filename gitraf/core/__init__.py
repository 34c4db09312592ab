"""Core domain for the gitraf SSH gateway and pages pipeline"""
