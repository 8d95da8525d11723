"""Exam Guard - remote exam integrity monitoring"""
