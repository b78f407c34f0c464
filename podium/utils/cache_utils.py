"""
Cache utilities for the Podium application
Caches standings reads and drops them whenever scores are rewritten
"""

import functools

from flask import current_app

from podium import cache


# Backends whose entries live inside one process. Another process (the CLI,
# a second worker) cannot invalidate them, so standings are not cached there.
PROCESS_LOCAL_BACKENDS = {"SimpleCache", "NullCache", "simple", "null"}


def cache_is_shared():
    """Whether the configured cache backend is visible to every process"""
    cache_type = str(current_app.config.get("CACHE_TYPE", "SimpleCache"))
    return cache_type.rsplit(".", 1)[-1] not in PROCESS_LOCAL_BACKENDS


def standings_cache_key(func_name, *args):
    """Cache key for a standings query, shared by readers and invalidation"""
    args_str = "_".join(str(arg) for arg in args)
    return f"query_standings_{func_name}_{args_str}"


def cached_query(timeout=None):
    """
    Decorator for caching standings query results

    Only positional arguments take part in the key. Failed results
    (falsy ServiceResult) are not cached, and nothing is cached on a
    process-local backend.

    Args:
        timeout: Cache timeout in seconds (default STANDINGS_CACHE_TIMEOUT)
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args):
            if not cache_is_shared():
                return f(*args)

            cache_key = standings_cache_key(f.__name__, *args)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            result = f(*args)
            if result:
                cache.set(
                    cache_key,
                    result,
                    timeout=timeout
                    or current_app.config.get("STANDINGS_CACHE_TIMEOUT", 600),
                )
                current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_standings(league_id, race_id=None):
    """
    Drop cached standings of a league

    Args:
        league_id: League whose scores changed
        race_id: Race whose per-race standings changed, if any
    """
    keys = [standings_cache_key("league_standings", league_id)]
    if race_id is not None:
        keys.append(standings_cache_key("race_standings", league_id, race_id))
    cache.delete_many(*keys)
    current_app.logger.debug(f"Standings cache cleared for league {league_id}")
