import re


def generate_meet_link(base_url, date_str, time_slot):
    """Deterministic meeting room per (date, slot), e.g. .../NephroConsult-2025-10-05-1000AM"""
    compact = re.sub(r'\s+', '', time_slot or '')
    slug = re.sub(r'[^a-zA-Z0-9-]', '', f"{date_str}-{compact}")
    return f"{base_url.rstrip('-')}-{slug}"
