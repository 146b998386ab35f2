"""
Database CRUD operations.

    from db import crud
    await crud.get_entry_by_external_id(session, 603)
"""

from db.crud.audit import (
    delete_expired_audit_records,
    get_latest_audit_records,
    list_audit_records,
    record_audit,
)
from db.crud.catalog import (
    create_catalog_entry,
    get_entry_by_external_id,
    get_entry_by_id,
    get_existing_external_ids,
)
from db.crud.settings import (
    get_setting,
    get_setting_value,
    initialize_default_settings,
    list_settings,
    load_pipeline_config,
    set_setting_value,
)
from db.crud.streams import (
    activate_candidate,
    create_candidate,
    delete_broken_candidates,
    get_active_candidate,
    get_active_candidates_below,
    get_active_candidates_unverified_since,
    get_candidate_by_id,
    get_candidate_by_url,
    get_candidates_for_entry,
    mark_candidate_broken,
    mark_candidate_verified,
    set_superseded_by,
    upsert_candidate,
)

__all__ = [
    "delete_expired_audit_records",
    "get_latest_audit_records",
    "list_audit_records",
    "record_audit",
    "create_catalog_entry",
    "get_entry_by_external_id",
    "get_entry_by_id",
    "get_existing_external_ids",
    "get_setting",
    "get_setting_value",
    "initialize_default_settings",
    "list_settings",
    "load_pipeline_config",
    "set_setting_value",
    "activate_candidate",
    "create_candidate",
    "delete_broken_candidates",
    "get_active_candidate",
    "get_active_candidates_below",
    "get_active_candidates_unverified_since",
    "get_candidate_by_id",
    "get_candidate_by_url",
    "get_candidates_for_entry",
    "mark_candidate_broken",
    "mark_candidate_verified",
    "set_superseded_by",
    "upsert_candidate",
]
