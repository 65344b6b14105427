def auth_headers(user_id: str) -> dict[str, str]:
    """Tests authenticate as a local user id instead of an Appwrite JWT."""
    return {"Authorization": f"Bearer {user_id}"}
