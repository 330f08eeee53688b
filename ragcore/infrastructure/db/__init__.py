"""Database infrastructure"""
