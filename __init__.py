#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Playlist Purge: list and batch-delete YouTube playlists through the
official Data API or the web client's internal API."""

__version__ = "0.3.0"
