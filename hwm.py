#! /usr/bin/env python3

# Hardware wallet manager script

if __name__ == '__main__':
    from hwmlib._cli import main
    main()
else:
    raise ImportError('hwm is not importable. Import hwmlib instead')
