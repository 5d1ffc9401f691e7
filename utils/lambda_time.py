def remaining_ms(context) -> int:
    return getattr(context, "get_remaining_time_in_millis", lambda: 10000)()
