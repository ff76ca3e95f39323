"""Central registry for Redis Lua scripts used by the processed-proof ledger.

The scripts are registered when the repository is first used and invoked with
EVALSHA. Each returns a two-element array ``{code, value}``:

    - 0: Rejected - the stored record is not in a state that allows the
         transition (e.g. already completed). The second element is the
         current record JSON.

    - 1: Success - the transition was applied. The second element is the
         record JSON now stored (empty string for deletions).

    - 2: Missing - no record exists for the key. The second element is an
         empty string.

Keeping the read-check-write inside one script makes each state transition
atomic across every process sharing the Redis instance.
"""

MINTER_SCRIPTS = {
    "record_broadcast": """
        local proof_key = KEYS[1]
        local new_val = ARGV[1]

        local current_raw = redis.call('GET', proof_key)
        if not current_raw then
            return {2, ''}
        end

        local current = cjson.decode(current_raw)
        if current.state ~= 'pending' then
            return {0, current_raw}
        end

        redis.call('SET', proof_key, new_val)
        return {1, new_val}
    """,
    "complete_proof": """
        local proof_key = KEYS[1]
        local new_val = ARGV[1]

        local current_raw = redis.call('GET', proof_key)
        if current_raw then
            local current = cjson.decode(current_raw)
            if current.state == 'completed' then
                return {0, current_raw}
            end
        end

        redis.call('SET', proof_key, new_val)
        return {1, new_val}
    """,
    "release_proof": """
        local proof_key = KEYS[1]

        local current_raw = redis.call('GET', proof_key)
        if not current_raw then
            return {2, ''}
        end

        local current = cjson.decode(current_raw)
        if current.state == 'completed' then
            return {0, current_raw}
        end

        redis.call('DEL', proof_key)
        return {1, ''}
    """,
}
