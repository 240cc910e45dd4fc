"""
GitHub GraphQL Queries.

Paged queries take ``$after`` as the cursor and expose
``pageInfo { hasNextPage endCursor }`` on the paginated connection.
"""

# Organization repositories (paged) with the first N issues of each
ORG_REPOS_ISSUES_QUERY = """
query OrgReposIssues($org: String!, $after: String, $first: Int!, $issuesFirst: Int!) {
  rateLimit {
    limit
    cost
    remaining
    resetAt
  }
  organization(login: $org) {
    name
    url
    repositories(first: $first, after: $after, orderBy: {field: PUSHED_AT, direction: DESC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        id
        name
        nameWithOwner
        url
        issues(first: $issuesFirst, orderBy: {field: UPDATED_AT, direction: DESC}, states: [OPEN, CLOSED]) {
          totalCount
          pageInfo {
            hasNextPage
          }
          nodes {
            id
            number
            title
            body
            url
            state
            createdAt
            closedAt
            repository {
              nameWithOwner
              url
            }
            assignees(first: 10) {
              nodes {
                login
                avatarUrl
                url
              }
            }
            labels(first: 20) {
              nodes {
                id
                name
                color
              }
            }
            milestone {
              id
              title
              url
              dueOn
              description
            }
            issueType {
              id
              name
              color
            }
          }
        }
      }
    }
  }
}
"""

# Organization project boards (paged)
ORG_PROJECTS_QUERY = """
query OrgProjects($org: String!, $after: String, $first: Int!) {
  organization(login: $org) {
    projectsV2(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        id
        number
        title
        url
      }
    }
  }
}
"""

# Items of one project board (paged) with its single-select fields
PROJECT_ITEMS_QUERY = """
query ProjectItems($pid: ID!, $after: String, $first: Int!) {
  node(id: $pid) {
    ... on ProjectV2 {
      number
      title
      url
      items(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          content {
            __typename
            ... on Issue {
              id
              number
              title
              url
              state
              createdAt
              closedAt
              repository {
                nameWithOwner
              }
              issueType {
                id
                name
                color
              }
            }
          }
          fieldValues(first: 20) {
            nodes {
              __typename
              ... on ProjectV2ItemFieldSingleSelectValue {
                name
                field {
                  __typename
                  ... on ProjectV2SingleSelectField {
                    name
                  }
                }
              }
            }
          }
        }
      }
      fields(first: 20) {
        nodes {
          ... on ProjectV2SingleSelectField {
            id
            name
            options {
              id
              name
            }
          }
        }
      }
    }
  }
}
"""

# Single issue with its timeline
ISSUE_WITH_TIMELINE_QUERY = """
query IssueWithTimeline($owner: String!, $repo: String!, $number: Int!, $timelineFirst: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      id
      number
      title
      body
      url
      state
      createdAt
      closedAt
      repository {
        nameWithOwner
        url
      }
      assignees(first: 10) {
        nodes {
          login
          avatarUrl
          url
        }
      }
      labels(first: 20) {
        nodes {
          id
          name
          color
        }
      }
      milestone {
        id
        title
        url
        dueOn
        description
      }
      issueType {
        id
        name
        color
      }
      comments {
        totalCount
      }
      timelineItems(first: $timelineFirst) {
        totalCount
        nodes {
          __typename
          ... on IssueComment {
            createdAt
            author { login }
            body
          }
          ... on LabeledEvent {
            createdAt
            actor { login }
            label { name }
          }
          ... on UnlabeledEvent {
            createdAt
            actor { login }
            label { name }
          }
          ... on AssignedEvent {
            createdAt
            actor { login }
            assignee { ... on User { login } }
          }
          ... on UnassignedEvent {
            createdAt
            actor { login }
            assignee { ... on User { login } }
          }
          ... on ClosedEvent {
            createdAt
            actor { login }
          }
          ... on ReopenedEvent {
            createdAt
            actor { login }
          }
          ... on CrossReferencedEvent {
            createdAt
            actor { login }
            source {
              __typename
              ... on Issue { number url title }
              ... on PullRequest { number url title }
            }
          }
        }
      }
    }
  }
}
"""

# Labels, assignable users and milestones offered when creating an issue
REPO_ISSUE_METADATA_QUERY = """
query RepoIssueMetadata($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
    nameWithOwner
    labels(first: 100) {
      nodes {
        id
        name
        color
      }
    }
    assignableUsers(first: 100) {
      nodes {
        id
        login
        avatarUrl
      }
    }
    milestones(first: 50, states: [OPEN]) {
      nodes {
        id
        title
        dueOn
      }
    }
  }
}
"""

CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: CreateIssueInput!) {
  createIssue(input: $input) {
    issue {
      id
      number
      title
      url
      state
      createdAt
      repository {
        nameWithOwner
        url
      }
    }
  }
}
"""
