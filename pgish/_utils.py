from functools import wraps


def set_event_when_done(event_name):
    def decorator(method):
        @wraps(method)
        async def wrapper(self, *args, **kwargs):
            try:
                return await method(self, *args, **kwargs)
            finally:
                getattr(self, event_name).set()

        return wrapper

    return decorator
