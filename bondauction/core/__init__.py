"""Auction engine, collaborator ledgers, configuration and storage"""
