# WORKFLOW: ETL package for workspace archive imports.
# Used by: API import endpoint, scripts/run_import.py
# Modules include:
# 1. ingest_zip.py - Download and extract the archive, discover CSV and image files
# 2. transform_rows.py - Read ';' separated listing files and normalize each row
# 3. reconcile.py - Upsert workspaces per centre and retire the ones missing from the import
# 4. attach_media.py - Match images to workspaces and upload at most one per workspace
# 5. pipeline.py - Run the steps in one transaction and emit the notifications
#
# ETL flow: Archive URL -> Extract -> Listing rows -> Workspaces -> Media -> Commit -> Notify
# A single failed listing row rolls back the whole import.

"""
ETL package for workspace archive imports.
"""
