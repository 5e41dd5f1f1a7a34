"""Render a live page and write a portable, script-free replica of it."""
