# Chat messages share the posts table with leaves (see tribe/modules/leaves/models.py)

"""
A chat message is a posts row with:
- message_type: 'message', or 'reply' when reply_to_id is set
- leaf_type: 'text'
- branch_id: the branch the conversation belongs to

Live delivery to connected clients is done by the database provider's realtime
channel on the posts table; this service only persists and lists.
"""
