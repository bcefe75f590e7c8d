#!/usr/bin/env python3
"""Backup runner for schedulers that call a script instead of the console entry point"""
from vaultkeep.cli import main

if __name__ == '__main__':
    main()
