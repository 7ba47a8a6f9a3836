"""Declarative VirtualBox VM management on top of VBoxManage."""

__version__ = '0.1.0'
